#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_repository

short_description: Creates, updates or deletes Artifactory repositories

version_added: "1.0.0"

description:
    - Verifies that repositories matching the key in the repository configs are present or absent as selected
      by I(state).  When I(state=Prune), all repositories not in I(repository_configs) are removed.
    - Keys are matched ignoring case.  An existing repository keeps the capitalization Artifactory has for it.
    - Remote repository passwords are write-only.  Artifactory returns them encrypted, so a changed password
      alone is never detected as drift.

options:
    repository_configs:
        description:
          - List of repository configurations to be created, updated, or deleted.  Must contain the C(key),
            C(rclass), and C(packageType) fields at a minimum in each configuration.  Repository configuration
            format can be found at https://www.jfrog.com/confluence/display/JFROG/Repository+Configuration+JSON
          - Only C(key) is needed when I(state=Absent).
          - It is best practice to avoid using capital letters in the C(key) field.
          - This can also be passed as a JSON string.
        required: True
        type: raw

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Maven repositories
  jfrog.platform.artifactory_repository:
    repository_configs:
      - key: libs-release-local
        rclass: local
        packageType: maven
        handleSnapshots: false
      - key: maven-central
        rclass: remote
        packageType: maven
        url: https://repo1.maven.org/maven2/
      - key: libs-release
        rclass: virtual
        packageType: maven
        repositories:
          - libs-release-local
          - maven-central
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"

- name: Repositories from a JSON file, removing all others
  jfrog.platform.artifactory_repository:
    repository_configs: "{{ lookup('file', 'repositories.json') }}"
    state: Prune
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Repositories modified'
added:
    description: Keys of the repositories that were added
    type: list
    returned: always
updated:
    description: Keys of the repositories that were updated
    type: list
    returned: always
deleted:
    description: Keys of the repositories that were deleted
    type: list
    returned: always
'''

import json
from urllib.parse import quote

from ansible.module_utils.basic import AnsibleModule
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi import (
    ArtifactoryApi,
    ArtifactoryApiError,
    KEYED_STATES,
    applyState,
    commonArgumentSpec,
    connectionParams,
    failFromError,
    prepareConnection,
)

REPOSITORIES_ENDPOINT = 'artifactory/api/repositories'


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        repository_configs=dict(type='raw', required=True),
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
        configs = parseRepositoryConfigs(module.params['repository_configs'])
        checkRepositoryConfigs(configs, module.params['state'])
        api = ArtifactoryRepository(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], configs)
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "Repositories modified"
    else:
        result['message'] = "Repositories unchanged"

    module.exit_json(**result)


def main():
    run_module()


def parseRepositoryConfigs(repositoryConfigs):
    '''Accepts a list of dictionaries, a list of JSON strings or a JSON list.'''
    if isinstance(repositoryConfigs, str):
        repositoryConfigs = json.loads(repositoryConfigs)
    if isinstance(repositoryConfigs, dict):
        repositoryConfigs = [repositoryConfigs]
    if not isinstance(repositoryConfigs, list):
        raise ValueError('"repository_configs" needs to be a list or JSON list')
    configs = list()
    for repo in repositoryConfigs:
        if isinstance(repo, str):
            repo = json.loads(repo)
        if not isinstance(repo, dict):
            raise ValueError('Each entry in "repository_configs" must be a dictionary')
        configs.append(repo)
    return configs


def checkRepositoryConfigs(configs, state):
    absent = str(state).lower() == 'absent'
    for repo in configs:
        if not repo.get('key'):
            raise ValueError('"key" is a required field in "repository_configs"')
        if absent:
            continue
        for field in ('rclass', 'packageType'):
            if not repo.get(field):
                raise ValueError('"%s" is a required field in "repository_configs" (repository %s)' % (field, repo['key']))


class ArtifactoryRepository(ArtifactoryApi):
    _ignoredFields = ('password',)
    _caseInsensitiveKeys = True

    def _getRecordKeyList(self):
        return ['key']

    def _repositoryUrl(self, key):
        return '%s/%s' % (REPOSITORIES_ENDPOINT, quote(key, safe=''))

    def _getConfigRecordListFromArtifactory(self):
        # the listing only holds key, type, url and packageType
        return [self._newRecord(repo) for repo in self._sendRequest(REPOSITORIES_ENDPOINT) or []]

    def _updateAll(self, pairs):
        detailed = list()
        for desired, current in pairs:
            # force keys to match capitalization
            desired.record['key'] = current['key']
            detailed.append((desired, self._newRecord(self._sendRequest(self._repositoryUrl(current['key'])))))
        return super()._updateAll(detailed)

    def _addToArtifactory(self, configRecord):
        self._sendRequest(self._repositoryUrl(configRecord['key']), 'PUT', configRecord.record, retryOnMergeError=True)

    def _updateInArtifactory(self, configRecord, artifactoryRecord):
        self._sendRequest(self._repositoryUrl(configRecord['key']), 'POST', configRecord.record, retryOnMergeError=True)

    def _deleteFromArtifactory(self, configRecord):
        self._sendRequest(self._repositoryUrl(configRecord['key']), 'DELETE', retryOnMergeError=True)


if __name__ == '__main__':
    main()
