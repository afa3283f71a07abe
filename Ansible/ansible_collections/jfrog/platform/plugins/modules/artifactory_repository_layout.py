#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_repository_layout

short_description: Manages custom repository layouts

version_added: "1.0.0"

description:
    - Adds, updates or removes repository layouts in the C(repoLayouts) block of the Artifactory system
      configuration (REST endpoint artifactory/api/system/configuration).

options:
    repository_layouts:
        description:
          - List of repository layouts.  Only C(name) is needed when I(state=Absent).
          - I(state=Prune) also removes the layouts Artifactory ships with when they are not listed.
        type: list
        elements: dict
        required: True
        suboptions:
            name:
                description: Layout name.
                type: str
                required: True
            artifact_path_pattern:
                description: Please refer to Path Patterns in the Artifactory documentation.  Required unless I(state=Absent).
                type: str
            distinctive_descriptor_path_pattern:
                description: When set, I(descriptor_path_pattern) will be used.
                type: bool
                default: False
            descriptor_path_pattern:
                description: Please refer to Descriptor Path Patterns in the Artifactory documentation.
                type: str
                default: ''
            folder_integration_revision_regexp:
                description: A regular expression matching the integration revision string appearing in a folder name.
                type: str
                default: ''
            file_integration_revision_regexp:
                description: A regular expression matching the integration revision string appearing in a file name.
                type: str
                default: ''

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Custom layout for vendor drops
  jfrog.platform.artifactory_repository_layout:
    repository_layouts:
      - name: vendor-layout
        artifact_path_pattern: "[org]/[module]/[baseRev](-[folderItegRev])/[module]-[baseRev](-[fileItegRev])(-[classifier]).[ext]"
        distinctive_descriptor_path_pattern: true
        descriptor_path_pattern: "[org]/[module]/[baseRev](-[folderItegRev])/[module]-[baseRev](-[fileItegRev])(-[classifier]).pom"
        folder_integration_revision_regexp: "Foo"
        file_integration_revision_regexp: "Foo|(?:(?:[0-9]{8}.[0-9]{6})-(?:[0-9]+))"
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Repository layouts modified'
added:
    description: Names of the layouts that were added
    type: list
    returned: always
updated:
    description: Names of the layouts that were updated
    type: list
    returned: always
deleted:
    description: Names of the layouts that were deleted
    type: list
    returned: always
'''

from ansible.module_utils.basic import AnsibleModule
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi import (
    ArtifactoryApiError,
    KEYED_STATES,
    applyState,
    commonArgumentSpec,
    connectionParams,
    failFromError,
    prepareConnection,
)
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryConfiguration import (
    ArtifactoryConfigurationApi,
    xmlBool,
    xmlText,
)


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        repository_layouts=dict(type='list', elements='dict', required=True, options=dict(
            name=dict(type='str', required=True),
            artifact_path_pattern=dict(type='str'),
            distinctive_descriptor_path_pattern=dict(type='bool', default=False),
            descriptor_path_pattern=dict(type='str', default=''),
            folder_integration_revision_regexp=dict(type='str', default=''),
            file_integration_revision_regexp=dict(type='str', default=''),
        )),
        state=dict(type='str', default='Present', choices=KEYED_STATES),
    )

    result = dict(
        changed=False,
        message='',
        added=[],
        updated=[],
        deleted=[]
    )

    module = AnsibleModule(
        argument_spec=module_args,
        supports_check_mode=True
    )

    try:
        checkLayouts(module.params['repository_layouts'], module.params['state'])
        api = ArtifactoryRepositoryLayout(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(layout) for layout in module.params['repository_layouts']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "Repository layouts modified"
    else:
        result['message'] = "Repository layouts unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkLayouts(layouts, state):
    for layout in layouts:
        if not layout['name']:
            raise ValueError('"name" must not be empty')
        if str(state).lower() == 'absent':
            continue
        if not layout.get('artifact_path_pattern'):
            raise ValueError('Repository layout %s needs "artifact_path_pattern"' % layout['name'])
        if layout['distinctive_descriptor_path_pattern'] and not layout['descriptor_path_pattern']:
            raise ValueError('Repository layout %s: "descriptor_path_pattern" is required when "distinctive_descriptor_path_pattern" is true'
                             % layout['name'])


def toApiModel(layout):
    return {
        'name': layout['name'],
        'artifactPathPattern': layout['artifact_path_pattern'] or '',
        'distinctiveDescriptorPathPattern': layout['distinctive_descriptor_path_pattern'],
        'descriptorPathPattern': layout['descriptor_path_pattern'] or '',
        'folderIntegrationRevisionRegExp': layout['folder_integration_revision_regexp'] or '',
        'fileIntegrationRevisionRegExp': layout['file_integration_revision_regexp'] or '',
    }


class ArtifactoryRepositoryLayout(ArtifactoryConfigurationApi):
    _patchPath = ('repoLayouts',)
    _xmlPath = 'repoLayouts/repoLayout'
    _keyField = 'name'

    def _recordFromXml(self, elem):
        return {
            'name': xmlText(elem, 'name'),
            'artifactPathPattern': xmlText(elem, 'artifactPathPattern'),
            'distinctiveDescriptorPathPattern': xmlBool(elem, 'distinctiveDescriptorPathPattern'),
            'descriptorPathPattern': xmlText(elem, 'descriptorPathPattern'),
            'folderIntegrationRevisionRegExp': xmlText(elem, 'folderIntegrationRevisionRegExp'),
            'fileIntegrationRevisionRegExp': xmlText(elem, 'fileIntegrationRevisionRegExp'),
        }


if __name__ == '__main__':
    main()
