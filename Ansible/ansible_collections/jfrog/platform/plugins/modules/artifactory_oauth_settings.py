#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_oauth_settings

short_description: Configures OAuth single sign-on

version_added: "1.0.0"

description:
    - Sets the OAuth SSO integration and its providers.  The settings are read from
      artifactory/api/oauth and written through the C(security.oauthSettings) block of the system configuration.
    - Providers Artifactory holds that are not listed are removed.
    - Artifactory returns client secrets hashed, so a changed I(client_secret) alone is not detected.
    - The read endpoint is undocumented and may not be available on SaaS instances.

options:
    enable:
        description: Enable OAuth SSO.
        type: bool
        default: True
    persist_users:
        description: Create users in the Artifactory database when they log in through OAuth.
        type: bool
        default: False
    allow_user_to_access_profile:
        description: Allow users created by OAuth login to access their profile page.
        type: bool
        default: False
    providers:
        description:
          - OAuth providers.  At least one is needed unless I(state=Absent).
        type: list
        elements: dict
        suboptions:
            name:
                description: Provider name.
                type: str
                required: True
            enabled:
                description: Enable the provider.
                type: bool
                default: True
            type:
                description: Provider type, for example C(github), C(google), C(openId) or C(cloudfoundry).
                type: str
                required: True
            client_id:
                description: OAuth client id.
                type: str
                required: True
            client_secret:
                description: OAuth client secret.
                type: str
                required: True
            api_url:
                description: Provider API URL.
                type: str
                required: True
            auth_url:
                description: Provider authorization URL.
                type: str
                required: True
            token_url:
                description: Provider token URL.
                type: str
                required: True

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.singleton_state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Log in with GitHub
  jfrog.platform.artifactory_oauth_settings:
    persist_users: true
    providers:
      - name: github
        type: github
        client_id: "{{ github_client_id }}"
        client_secret: "{{ github_client_secret }}"
        api_url: https://api.github.com/user
        auth_url: https://github.com/login/oauth/authorize
        token_url: https://github.com/login/oauth/access_token
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"

- name: Remove OAuth SSO
  jfrog.platform.artifactory_oauth_settings:
    state: Absent
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'OAuth settings modified'
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

OAUTH_ENDPOINT = 'artifactory/api/oauth'


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        enable=dict(type='bool', default=True),
        persist_users=dict(type='bool', default=False),
        allow_user_to_access_profile=dict(type='bool', default=False),
        providers=dict(type='list', elements='dict', options=dict(
            name=dict(type='str', required=True),
            enabled=dict(type='bool', default=True),
            type=dict(type='str', required=True),
            client_id=dict(type='str', required=True),
            client_secret=dict(type='str', required=True, no_log=True),
            api_url=dict(type='str', required=True),
            auth_url=dict(type='str', required=True),
            token_url=dict(type='str', required=True),
        )),
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
        checkOauthSettings(module.params)
        api = ArtifactoryOauthSettings(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applySingletonState(api, module.params['state'], toApiModel(module.params))
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    if result['changed']:
        result['message'] = "OAuth settings modified"
    else:
        result['message'] = "OAuth settings unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkOauthSettings(params):
    if str(params['state']).lower() == 'absent':
        return
    providers = params.get('providers') or []
    if not providers:
        raise ValueError('At least one OAuth provider is needed')
    names = [provider['name'] for provider in providers]
    for name in names:
        if not name:
            raise ValueError('OAuth provider names must not be empty')
        if names.count(name) > 1:
            raise ValueError('OAuth provider "%s" is listed more than once' % name)


def toApiModel(params):
    providers = dict()
    for provider in params.get('providers') or []:
        providers[provider['name']] = {
            'enabled': provider['enabled'],
            'providerType': provider['type'],
            'id': provider['client_id'],
            'secret': provider['client_secret'],
            'apiUrl': provider['api_url'],
            'authUrl': provider['auth_url'],
            'tokenUrl': provider['token_url'],
        }
    return {
        'enableIntegration': params['enable'],
        'persistUsers': params['persist_users'],
        'allowUserToAccessProfile': params['allow_user_to_access_profile'],
        'oauthProvidersSettings': providers,
    }


class ArtifactoryOauthSettings(SystemConfigurationMixin, ArtifactorySingletonApi):
    '''Reads the JSON OAuth settings and writes them back through the YAML configuration PATCH.'''

    # Artifactory only returns a hash of the secret
    _ignoredFields = ('oauthProvidersSettings.*.secret',)

    def _getConfigFromArtifactory(self):
        settings = self._sendRequest(OAUTH_ENDPOINT) or {}
        providers = settings.get('providers') or []
        if not providers:
            return None
        return {
            'enableIntegration': bool(settings.get('enabled', False)),
            'persistUsers': bool(settings.get('persistUsers', False)),
            'allowUserToAccessProfile': bool(settings.get('allowUserToAccessProfile', False)),
            'oauthProvidersSettings': dict((provider.get('name'), {
                'enabled': bool(provider.get('enabled', False)),
                'providerType': provider.get('providerType', ''),
                'id': provider.get('id', ''),
                'secret': provider.get('secret', ''),
                'apiUrl': provider.get('apiUrl', ''),
                'authUrl': provider.get('authUrl', ''),
                'tokenUrl': provider.get('tokenUrl', ''),
            }) for provider in providers),
        }

    def _completeConfig(self, config, currentConfig):
        if not currentConfig:
            return config
        providers = dict(config['oauthProvidersSettings'])
        for name in currentConfig['oauthProvidersSettings']:
            if name not in providers:
                providers[name] = None
        return dict(config, oauthProvidersSettings=providers)

    def _setInArtifactory(self, config):
        self.sendConfigurationPatch({'security': {'oauthSettings': config}})

    def _deleteFromArtifactory(self, config):
        self.sendConfigurationPatch({'security': {'oauthSettings': None}})


if __name__ == '__main__':
    main()
