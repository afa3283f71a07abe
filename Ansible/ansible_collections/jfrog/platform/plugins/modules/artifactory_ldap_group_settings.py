#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_ldap_group_settings

short_description: Synchronizes LDAP groups into Artifactory

version_added: "1.0.0"

description:
    - Adds, updates or removes LDAP group settings in the C(security.ldapGroupSettings) block of the
      Artifactory system configuration (REST endpoint artifactory/api/system/configuration).

options:
    ldap_group_settings:
        description:
          - List of LDAP group settings.  Only C(name) is needed when I(state=Absent).
        type: list
        elements: dict
        required: True
        suboptions:
            name:
                description: Ldap group setting name.
                type: str
                required: True
            ldap_setting_key:
                description: The LDAP setting key you want to use for group retrieval.
                type: str
            group_base_dn:
                description: A search base for group entry DNs, relative to the DN on the LDAP server's URL.
                type: str
                default: ''
            group_name_attribute:
                description: Attribute on the group entry denoting the group name.  Used when importing groups.
                type: str
            group_member_attribute:
                description: A multi-value attribute on the group entry containing user DNs or IDs of the group members.
                type: str
            sub_tree:
                description: When set, enables deep search through the sub-tree of the LDAP URL + Search Base.
                type: bool
                default: True
            filter:
                description: The LDAP filter used to search for group entries.  Used for importing groups.
                type: str
            description_attribute:
                description: An attribute on the group entry which denoting the group description.
                type: str
            strategy:
                description: The JFrog Artifactory mapping strategy.
                type: str
                choices:
                  - STATIC
                  - DYNAMIC
                  - HIERARCHICAL
                  - static
                  - dynamic
                  - hierarchical

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Import static groups from the corporate directory
  jfrog.platform.artifactory_ldap_group_settings:
    ldap_group_settings:
      - name: corp-groups
        ldap_setting_key: corp
        group_base_dn: ou=Groups
        group_name_attribute: cn
        group_member_attribute: uniqueMember
        filter: "(objectClass=groupOfNames)"
        description_attribute: description
        strategy: STATIC
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'LDAP group settings modified'
added:
    description: Names of the LDAP group settings that were added
    type: list
    returned: always
updated:
    description: Names of the LDAP group settings that were updated
    type: list
    returned: always
deleted:
    description: Names of the LDAP group settings that were deleted
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

_REQUIRED_FIELDS = ('ldap_setting_key', 'group_name_attribute', 'group_member_attribute', 'filter', 'description_attribute', 'strategy')


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        ldap_group_settings=dict(type='list', elements='dict', required=True, options=dict(
            name=dict(type='str', required=True),
            ldap_setting_key=dict(type='str', no_log=False),
            group_base_dn=dict(type='str', default=''),
            group_name_attribute=dict(type='str'),
            group_member_attribute=dict(type='str'),
            sub_tree=dict(type='bool', default=True),
            filter=dict(type='str'),
            description_attribute=dict(type='str'),
            strategy=dict(type='str', choices=['STATIC', 'DYNAMIC', 'HIERARCHICAL', 'static', 'dynamic', 'hierarchical']),
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
        checkLdapGroupSettings(module.params['ldap_group_settings'], module.params['state'])
        api = ArtifactoryLDAPGroup(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(setting) for setting in module.params['ldap_group_settings']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "LDAP group settings modified"
    else:
        result['message'] = "LDAP group settings unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkLdapGroupSettings(settings, state):
    for setting in settings:
        if not setting['name']:
            raise ValueError('"name" must not be empty')
        if str(state).lower() == 'absent':
            continue
        missing = [field for field in _REQUIRED_FIELDS if not setting.get(field)]
        if missing:
            raise ValueError('LDAP group setting %s is missing %s' % (setting['name'], ', '.join(missing)))


def toApiModel(setting):
    return {
        'name': setting['name'],
        'enabledLdap': setting['ldap_setting_key'] or '',
        'groupBaseDn': setting['group_base_dn'] or '',
        'groupNameAttribute': setting['group_name_attribute'] or '',
        'groupMemberAttribute': setting['group_member_attribute'] or '',
        'subTree': setting['sub_tree'],
        'filter': setting['filter'] or '',
        'descriptionAttribute': setting['description_attribute'] or '',
        'strategy': (setting['strategy'] or '').upper(),
    }


class ArtifactoryLDAPGroup(ArtifactoryConfigurationApi):
    _patchPath = ('security', 'ldapGroupSettings')
    _xmlPath = 'security/ldapGroupSettings/ldapGroupSetting'
    _keyField = 'name'
    _deleteByRestore = True

    def _recordFromXml(self, elem):
        return {
            'name': xmlText(elem, 'name'),
            'enabledLdap': xmlText(elem, 'enabledLdap'),
            'groupBaseDn': xmlText(elem, 'groupBaseDn'),
            'groupNameAttribute': xmlText(elem, 'groupNameAttribute'),
            'groupMemberAttribute': xmlText(elem, 'groupMemberAttribute'),
            'subTree': xmlBool(elem, 'subTree'),
            'filter': xmlText(elem, 'filter'),
            'descriptionAttribute': xmlText(elem, 'descriptionAttribute'),
            'strategy': xmlText(elem, 'strategy').upper(),
        }


if __name__ == '__main__':
    main()
