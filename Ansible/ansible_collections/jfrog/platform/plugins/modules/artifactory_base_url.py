#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_base_url

short_description: Sets the custom base URL of Artifactory

version_added: "1.0.0"

description:
    - Sets or removes the base URL Artifactory uses in links it generates
      (REST endpoint artifactory/api/system/configuration/baseUrl).

options:
    base_url:
        description: The base URL, for example C(https://artifactory.example.com).  Required unless I(state=Absent).
        type: str

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.singleton_state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Links point at the load balancer
  jfrog.platform.artifactory_base_url:
    base_url: https://artifactory.example.com
    artifactory_base_url: http://artifactory-node-1:8082
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Base URL modified'
'''

import re

from ansible.module_utils.basic import AnsibleModule
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi import (
    ArtifactoryApiError,
    ArtifactorySingletonApi,
    SINGLETON_STATES,
    applySingletonState,
    commonArgumentSpec,
    connectionParams,
    failFromError,
    prepareConnection,
)

BASE_URL_ENDPOINT = 'artifactory/api/system/configuration/baseUrl'

_URL = re.compile(r'^https?://[^\s/]+')


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        base_url=dict(type='str'),
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
        checkBaseUrl(module.params['base_url'], module.params['state'])
        api = ArtifactoryBaseUrl(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applySingletonState(api, module.params['state'], {'baseUrl': module.params['base_url'] or ''})
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    if result['changed']:
        result['message'] = "Base URL modified"
    else:
        result['message'] = "Base URL unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkBaseUrl(baseUrl, state):
    if str(state).lower() == 'absent':
        return
    if not baseUrl or not _URL.match(baseUrl):
        raise ValueError('"base_url" must be an http or https URL')


class ArtifactoryBaseUrl(ArtifactorySingletonApi):

    def _getConfigFromArtifactory(self):
        response = self._sendRequest(BASE_URL_ENDPOINT)
        if isinstance(response, dict):
            baseUrl = response.get('baseUrl')
        else:
            baseUrl = response
        if not baseUrl:
            return None
        return {'baseUrl': baseUrl.strip()}

    def _setInArtifactory(self, config):
        self._sendRequest(BASE_URL_ENDPOINT, 'PUT', config['baseUrl'], contentType='text/plain')

    def _deleteFromArtifactory(self, config):
        self._sendRequest(BASE_URL_ENDPOINT, 'DELETE')


if __name__ == '__main__':
    main()
