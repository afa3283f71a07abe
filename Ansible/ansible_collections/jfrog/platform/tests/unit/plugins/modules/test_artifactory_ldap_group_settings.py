# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

import pytest

from ansible_collections.jfrog.platform.plugins.modules import artifactory_ldap_group_settings
from ansible_collections.jfrog.platform.plugins.modules.artifactory_ldap_group_settings import checkLdapGroupSettings, toApiModel

CONFIG_XML = '''<config>
    <security>
        <ldapGroupSettings>
            <ldapGroupSetting>
                <name>corp-groups</name>
                <groupBaseDn>ou=Groups</groupBaseDn>
                <groupNameAttribute>cn</groupNameAttribute>
                <groupMemberAttribute>uniqueMember</groupMemberAttribute>
                <subTree>true</subTree>
                <filter>(objectClass=groupOfNames)</filter>
                <descriptionAttribute>description</descriptionAttribute>
                <strategy>STATIC</strategy>
                <enabledLdap>corp</enabledLdap>
            </ldapGroupSetting>
        </ldapGroupSettings>
    </security>
</config>
'''


def groupSetting(**overrides):
    options = dict(
        name='corp-groups',
        ldap_setting_key='corp',
        group_base_dn='ou=Groups',
        group_name_attribute='cn',
        group_member_attribute='uniqueMember',
        sub_tree=True,
        filter='(objectClass=groupOfNames)',
        description_attribute='description',
        strategy='static',
    )
    options.update(overrides)
    return options


def test_strategy_is_upper_cased():
    model = toApiModel(groupSetting(strategy='dynamic'))
    assert model['strategy'] == 'DYNAMIC'
    assert model['enabledLdap'] == 'corp'


def test_required_fields_reported():
    with pytest.raises(ValueError) as raised:
        checkLdapGroupSettings([groupSetting(filter=None, strategy=None)], 'Present')
    assert 'filter' in str(raised.value)
    assert 'strategy' in str(raised.value)
    checkLdapGroupSettings([dict(name='corp-groups')], 'Absent')


def test_lower_case_strategy_matches_stored(artifactory, run_module):
    artifactory.configuration(CONFIG_XML)
    result, module = run_module(artifactory_ldap_group_settings, dict(ldap_group_settings=[groupSetting()], state='Present'))
    assert result['changed'] is False


def test_prune_of_last_group_clears_block(artifactory, run_module):
    artifactory.configuration(CONFIG_XML)
    result, module = run_module(artifactory_ldap_group_settings, dict(
        ldap_group_settings=[groupSetting(name='new-groups')], state='Prune'))
    assert result['added'] == ['new-groups']
    assert result['deleted'] == ['corp-groups']
    patches = artifactory.patches()
    assert patches[0]['security']['ldapGroupSettings']['new-groups']['strategy'] == 'STATIC'
    assert patches[1] == {'security': {'ldapGroupSettings': None}}
    assert list(patches[2]['security']['ldapGroupSettings']) == ['new-groups']
