#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_trashcan_config

short_description: Configures the Artifactory trash can

version_added: "1.0.0"

description:
    - Sets the C(trashcanConfig) block of the Artifactory system configuration
      (REST endpoint artifactory/api/system/configuration).
    - The block always exists.  I(state=Absent) resets it to Artifactory's defaults
      (enabled, 14 days retention).

options:
    enabled:
        description: If enabled, deleted items are moved to the trash can.
        type: bool
        default: True
    retention_period_days:
        description: Days to keep deleted items in the trash can before deleting permanently.
        type: int
        default: 14

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.singleton_state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Keep deleted artifacts for a month
  jfrog.platform.artifactory_trashcan_config:
    retention_period_days: 30
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Trash can configuration modified'
'''

from ansible.module_utils.basic import AnsibleModule
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi import (
    ArtifactoryApiError,
    SINGLETON_STATES,
    applySingletonState,
    commonArgumentSpec,
    connectionParams,
    failFromError,
    prepareConnection,
)
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryConfiguration import (
    ArtifactoryConfigurationSingletonApi,
    xmlBool,
    xmlInt,
)

DEFAULT_TRASHCAN = {'enabled': True, 'retentionPeriodDays': 14}


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        enabled=dict(type='bool', default=True),
        retention_period_days=dict(type='int', default=14),
        state=dict(type='str', default='Present', choices=SINGLETON_STATES),
    )

    result = dict(
        changed=False,
        message=''
    )

    module = AnsibleModule(
        argument_spec=module_args,
        supports_check_mode=True
    )

    try:
        if module.params['retention_period_days'] < 0:
            raise ValueError('"retention_period_days" must not be negative')
        api = ArtifactoryTrashcan(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applySingletonState(api, module.params['state'], toApiModel(module.params))
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    if result['changed']:
        result['message'] = "Trash can configuration modified"
    else:
        result['message'] = "Trash can configuration unchanged"

    module.exit_json(**result)


def main():
    run_module()


def toApiModel(params):
    return {
        'enabled': params['enabled'],
        'retentionPeriodDays': params['retention_period_days'],
    }


class ArtifactoryTrashcan(ArtifactoryConfigurationSingletonApi):
    _patchKey = 'trashcanConfig'
    _xmlPath = 'trashcanConfig'

    def _recordFromXml(self, elem):
        return {
            'enabled': xmlBool(elem, 'enabled', DEFAULT_TRASHCAN['enabled']),
            'retentionPeriodDays': xmlInt(elem, 'retentionPeriodDays', DEFAULT_TRASHCAN['retentionPeriodDays']),
        }

    def _isDefault(self, config):
        return config == DEFAULT_TRASHCAN

    def _deleteFromArtifactory(self, config):
        # the block cannot be removed, only reset
        self.sendConfigurationPatch({self._patchKey: dict(DEFAULT_TRASHCAN)})


if __name__ == '__main__':
    main()
