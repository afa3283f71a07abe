#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_ldap_settings

short_description: This module is used for configuring Artifactory to use LDAP

version_added: "1.0.0"

description:
    - Adds, updates or removes LDAP settings in the C(security.ldapSettings) block of the
      Artifactory system configuration (REST endpoint artifactory/api/system/configuration).
    - The manager password is write-only.  Artifactory returns it encrypted, so a changed password
      alone is never detected as drift.

options:
    ldap_settings:
        description:
          - List of LDAP settings.  Only C(key) is needed when I(state=Absent).
        type: list
        elements: dict
        required: True
        suboptions:
            key:
                description: The unique ID of the LDAP setting.
                type: str
                required: True
            enabled:
                description: Flag to enable or disable the ldap setting.
                type: bool
                default: True
            ldap_url:
                description: Location of the LDAP server in the format ldap(s)://host:port/base_dn.  Required unless I(state=Absent).
                type: str
            user_dn_pattern:
                description:
                  - A DN pattern used to log users directly in to LDAP, for example C(uid={0},ou=People).
                  - Either I(user_dn_pattern) or I(search_filter) must be set.
                type: str
                default: ''
            email_attribute:
                description: An attribute that can be used to map a user's email address to a user created automatically in Artifactory.
                type: str
                default: mail
            auto_create_user:
                description: When set, users are automatically created when using LDAP.
                type: bool
                default: True
            ldap_poisoning_protection:
                description: Protects against LDAP poisoning by filtering out users exposed to vulnerabilities.
                type: bool
                default: True
            allow_user_to_access_profile:
                description: Auto created users will have access to their profile page.
                type: bool
                default: False
            paging_support_enabled:
                description: When set, supports paging results for the LDAP server.
                type: bool
                default: True
            search_filter:
                description: A filter expression used to search for the user DN used in LDAP authentication, for example C(uid={0}).
                type: str
                default: ''
            search_base:
                description: The Context name in which to search relative to the base DN in the LDAP URL.
                type: str
                default: ''
            search_sub_tree:
                description: When set, enables deep search through the sub tree of the LDAP URL + search base.
                type: bool
                default: True
            manager_dn:
                description: The full DN of a user with permissions that allow querying the LDAP server.
                type: str
                default: ''
            manager_password:
                description: The password of the user binding to the LDAP server when using "search" authentication.
                type: str
                default: ''

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
# Add or update an LDAP configuration on a server with a non-standard port number
- name: Add or update LDAP configuration
  jfrog.platform.artifactory_ldap_settings:
    ldap_settings:
      - key: myconnection
        ldap_url: ldaps://myldapserver.example.com/dc=example,dc=com
        user_dn_pattern: "uid={0},ou=People"
        search_sub_tree: false
        manager_dn: "{{ ldap_svcacct_username }}"
        manager_password: "{{ ldap_svcacct_password }}"
        auto_create_user: false
        email_attribute: email
    artifactory_base_url: https://artifactory.example.com:8081
    auth_type: Basic
    auth_string: "{{ artifactory_username }}:{{ artifactory_password }}"

# Delete an LDAP configuration while not verifying CA certs
- name: Delete LDAP configuration
  jfrog.platform.artifactory_ldap_settings:
    ldap_settings:
      - key: myconnection
    artifactory_base_url: https://artifactory.example.com
    state: Absent
    auth_type: ApiKey
    auth_string: "{{ api_key }}"
    ignore_ca_error: True

# Add or update LDAP configurations while deleting all others
- name: Keep only the listed LDAP configurations
  jfrog.platform.artifactory_ldap_settings:
    ldap_settings:
      - key: myconnection
        ldap_url: ldaps://myldapserver.example.com/dc=example,dc=com
        search_filter: "uid={0}"
      - key: myotherconnection
        enabled: false
        ldap_url: ldap://myldapserver.example.com/dc=example,dc=com
        search_filter: "uid={0}"
    artifactory_base_url: https://artifactory.example.com:8081
    state: Prune
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'LDAP settings modified'
added:
    description: Keys of the LDAP settings that were added
    type: list
    returned: always
updated:
    description: Keys of the LDAP settings that were updated
    type: list
    returned: always
deleted:
    description: Keys of the LDAP settings that were deleted
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
    # define available arguments/parameters a user can pass to the module
    module_args = commonArgumentSpec()
    module_args.update(
        ldap_settings=dict(type='list', elements='dict', required=True, options=dict(
            key=dict(type='str', required=True, no_log=False),
            enabled=dict(type='bool', default=True),
            ldap_url=dict(type='str'),
            user_dn_pattern=dict(type='str', default=''),
            email_attribute=dict(type='str', default='mail'),
            auto_create_user=dict(type='bool', default=True),
            ldap_poisoning_protection=dict(type='bool', default=True),
            allow_user_to_access_profile=dict(type='bool', default=False),
            paging_support_enabled=dict(type='bool', default=True),
            search_filter=dict(type='str', default=''),
            search_base=dict(type='str', default=''),
            search_sub_tree=dict(type='bool', default=True),
            manager_dn=dict(type='str', default=''),
            manager_password=dict(type='str', default='', no_log=True),
        )),
        state=dict(type='str', default='Present', choices=KEYED_STATES),
    )

    # seed the result dict in the object
    # changed is if this module effectively modified the target
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
        checkLdapSettings(module.params['ldap_settings'], module.params['state'])
        api = ArtifactoryLDAP(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(setting) for setting in module.params['ldap_settings']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "LDAP settings modified"
    else:
        result['message'] = "LDAP settings unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkLdapSettings(settings, state):
    for setting in settings:
        if not setting['key']:
            raise ValueError('"key" must not be empty')
        if str(state).lower() == 'absent':
            continue
        if not setting.get('ldap_url'):
            raise ValueError('LDAP setting %s needs "ldap_url"' % setting['key'])
        if not setting.get('user_dn_pattern') and not setting.get('search_filter'):
            raise ValueError('LDAP setting %s needs either "user_dn_pattern" or "search_filter"' % setting['key'])


def toApiModel(setting):
    '''Converts the module options of one LDAP setting into the Artifactory ldapSetting block.'''
    return {
        'key': setting['key'],
        'enabled': setting['enabled'],
        'ldapUrl': setting['ldap_url'] or '',
        'userDnPattern': setting['user_dn_pattern'] or '',
        'emailAttribute': setting['email_attribute'] or '',
        'autoCreateUser': setting['auto_create_user'],
        'ldapPoisoningProtection': setting['ldap_poisoning_protection'],
        'allowUserToAccessProfile': setting['allow_user_to_access_profile'],
        'pagingSupportEnabled': setting['paging_support_enabled'],
        'search': {
            'searchFilter': setting['search_filter'] or '',
            'searchBase': setting['search_base'] or '',
            'searchSubTree': setting['search_sub_tree'],
            'managerDn': setting['manager_dn'] or '',
            'managerPassword': setting['manager_password'] or '',
        },
    }


class ArtifactoryLDAP(ArtifactoryConfigurationApi):
    _patchPath = ('security', 'ldapSettings')
    _xmlPath = 'security/ldapSettings/ldapSetting'
    _keyField = 'key'
    _ignoredFields = ('search.managerPassword',)
    _deleteByRestore = True

    def _recordFromXml(self, elem):
        search = elem.find('search')
        if search is None:
            search = elem.makeelement('search', {})
        return {
            'key': xmlText(elem, 'key'),
            'enabled': xmlBool(elem, 'enabled'),
            'ldapUrl': xmlText(elem, 'ldapUrl'),
            'userDnPattern': xmlText(elem, 'userDnPattern'),
            'emailAttribute': xmlText(elem, 'emailAttribute'),
            'autoCreateUser': xmlBool(elem, 'autoCreateUser'),
            'ldapPoisoningProtection': xmlBool(elem, 'ldapPoisoningProtection'),
            'allowUserToAccessProfile': xmlBool(elem, 'allowUserToAccessProfile'),
            'pagingSupportEnabled': xmlBool(elem, 'pagingSupportEnabled'),
            'search': {
                'searchFilter': xmlText(search, 'searchFilter'),
                'searchBase': xmlText(search, 'searchBase'),
                'searchSubTree': xmlBool(search, 'searchSubTree'),
                'managerDn': xmlText(search, 'managerDn'),
                'managerPassword': xmlText(search, 'managerPassword'),
            },
        }


if __name__ == '__main__':
    main()
