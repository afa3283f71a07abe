#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_general_security

short_description: Configures anonymous access and the password encryption policy

version_added: "1.0.0"

description:
    - Sets the general security settings of Artifactory.  They are read from
      artifactory/api/securityconfig and written through the C(security) block of the system configuration.
    - The settings cannot be removed.  I(state=Absent) leaves them untouched and emits a warning.

options:
    enable_anonymous_access:
        description: Enable anonymous access.
        type: bool
        default: False
    encryption_policy:
        description: Determines the password requirements from users identified to Artifactory from a remote client.
        type: str
        default: SUPPORTED
        choices:
          - REQUIRED
          - SUPPORTED
          - UNSUPPORTED

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.singleton_state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Allow anonymous reads and require encrypted passwords
  jfrog.platform.artifactory_general_security:
    enable_anonymous_access: true
    encryption_policy: REQUIRED
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'General security settings modified'
'''

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
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryConfiguration import SystemConfigurationMixin

SECURITY_CONFIG_ENDPOINT = 'artifactory/api/securityconfig'


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        enable_anonymous_access=dict(type='bool', default=False),
        encryption_policy=dict(type='str', default='SUPPORTED', choices=['REQUIRED', 'SUPPORTED', 'UNSUPPORTED']),
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
        api = ArtifactoryGeneralSecurity(**connectionParams(module))
        prepareConnection(module, api)
        if str(module.params['state']).lower() == 'absent':
            module.warn('Artifactory general security settings cannot be removed; nothing was changed.')
        else:
            result['changed'] = applySingletonState(api, module.params['state'], toApiModel(module.params))
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    if result['changed']:
        result['message'] = "General security settings modified"
    else:
        result['message'] = "General security settings unchanged"

    module.exit_json(**result)


def main():
    run_module()


def toApiModel(params):
    return {
        'anonAccessEnabled': params['enable_anonymous_access'],
        'passwordSettings': {
            'encryptionPolicy': params['encryption_policy'],
        },
    }


class ArtifactoryGeneralSecurity(SystemConfigurationMixin, ArtifactorySingletonApi):
    '''Reads the JSON security configuration and writes it back through the YAML configuration PATCH.'''

    def _getConfigFromArtifactory(self):
        securityConfig = self._sendRequest(SECURITY_CONFIG_ENDPOINT) or {}
        passwordSettings = securityConfig.get('passwordSettings') or {}
        return {
            'anonAccessEnabled': bool(securityConfig.get('anonAccessEnabled', False)),
            'passwordSettings': {
                'encryptionPolicy': passwordSettings.get('encryptionPolicy', 'SUPPORTED'),
            },
        }

    def _setInArtifactory(self, config):
        self.sendConfigurationPatch({'security': config})

    def _deleteFromArtifactory(self, config):
        raise ValueError('Artifactory general security settings cannot be removed')


if __name__ == '__main__':
    main()
