# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

"""Modules run through the real AnsibleModule: defaults, aliases, choices and required options."""

from ansible_collections.jfrog.platform.plugins.modules import (
    artifactory_archive_policy,
    artifactory_backup,
    artifactory_base_url,
    artifactory_ldap_settings,
    artifactory_mail_server,
    artifactory_oauth_settings,
    artifactory_package_cleanup_policy,
    artifactory_proxy,
    artifactory_release_bundles_cleanup_policy,
    artifactory_trashcan_config,
)

PACKAGE_POLICIES = 'artifactory/api/cleanup/packages/policies'
BUNDLE_POLICIES = 'artifactory/api/cleanup/bundles/policies'
ARCHIVE_POLICIES = 'artifactory/api/archive/v2/packages/policies'

MAIL_SERVER_XML = '''<config>
    <mailServer>
        <enabled>true</enabled>
        <from>artifactory@example.com</from>
        <host>smtp.example.com</host>
        <port>25</port>
        <subjectPrefix>[Artifactory]</subjectPrefix>
        <ssl>false</ssl>
        <tls>false</tls>
    </mailServer>
</config>
'''

LDAP_XML = '''<config>
    <security>
        <ldapSettings>
            <ldapSetting>
                <key>corp</key>
                <enabled>true</enabled>
                <ldapUrl>ldap://ldap.example.com:389/dc=example,dc=com</ldapUrl>
                <userDnPattern>uid={0},ou=people</userDnPattern>
                <emailAttribute>mail</emailAttribute>
                <autoCreateUser>true</autoCreateUser>
                <ldapPoisoningProtection>true</ldapPoisoningProtection>
                <allowUserToAccessProfile>false</allowUserToAccessProfile>
                <pagingSupportEnabled>true</pagingSupportEnabled>
                <search>
                    <searchSubTree>true</searchSubTree>
                </search>
            </ldapSetting>
        </ldapSettings>
    </security>
</config>
'''


def test_mail_server_defaults_and_from_alias(artifactory, run_main):
    artifactory.configuration(MAIL_SERVER_XML)
    result = run_main(artifactory_mail_server, {'host': 'smtp.example.com', 'port': 25, 'from': 'artifactory@example.com'})
    assert result['changed'] is False
    assert artifactory.writes() == []


def test_ldap_setting_defaults_match_stored_setting(artifactory, run_main):
    artifactory.configuration(LDAP_XML)
    result = run_main(artifactory_ldap_settings, dict(ldap_settings=[dict(
        key='corp',
        ldap_url='ldap://ldap.example.com:389/dc=example,dc=com',
        user_dn_pattern='uid={0},ou=people',
    )]))
    assert result['changed'] is False
    assert result['message'] == 'LDAP settings unchanged'


def test_backup_defaults_are_written(artifactory, run_main):
    artifactory.configuration('<config/>')
    result = run_main(artifactory_backup, dict(backups=[dict(key='nightly', cron_exp='0 0 2 ? * *')]))
    assert result['added'] == ['nightly']
    body = artifactory.patches()[0]['backups']['nightly']
    assert body['enabled'] is True
    assert body['retentionPeriodHours'] == 168
    assert body['sendMailOnError'] is True
    assert body['createArchive'] is False
    assert body['precalculate'] is False
    assert 'excludedRepositories' not in body


def test_trashcan_absent_on_defaults(artifactory, run_main):
    artifactory.configuration('<config><trashcanConfig><enabled>true</enabled>'
                              '<retentionPeriodDays>14</retentionPeriodDays></trashcanConfig></config>')
    result = run_main(artifactory_trashcan_config, dict(state='Absent'))
    assert result['changed'] is False


def test_package_cleanup_policy_defaults(artifactory, run_main):
    artifactory.route('GET', PACKAGE_POLICIES, [])
    result = run_main(artifactory_package_cleanup_policy, dict(policies=[dict(
        key='npm-prune',
        search_criteria=dict(package_types=['npm'], repos=['**'], included_packages=['**'], created_before_in_months=6),
    )]))
    assert result['added'] == ['npm-prune']
    create, enablement = artifactory.writes()
    assert create['content']['enabled'] is True
    assert create['content']['skipTrashcan'] is False
    assert create['content']['durationInMinutes'] == 0
    assert create['content']['cronExp'] == ''
    assert enablement['content'] == {'enabled': True}


def test_release_bundle_policy_defaults(artifactory, run_main):
    artifactory.route('GET', BUNDLE_POLICIES, [])
    result = run_main(artifactory_release_bundles_cleanup_policy, dict(policies=[dict(
        key='old-bundles',
        search_criteria=dict(release_bundles=[dict(name='**')]),
    )]))
    assert result['added'] == ['old-bundles']
    criteria = artifactory.writes()[0]['content']['searchCriteria']
    assert criteria['createdBeforeInMonths'] == 24
    assert criteria['releaseBundles'] == [{'name': '**', 'projectKey': ''}]
    assert artifactory.writes()[0]['content']['itemType'] == 'releaseBundle'


def test_invalid_service_choice_rejected(artifactory, run_main):
    result = run_main(artifactory_proxy, dict(proxies=[dict(key='corp-proxy', host='proxy.example.com', port=3128, services=['jfrt', 'bogus'])]))
    assert result['failed'] is True
    assert 'services' in result['msg']
    assert artifactory.calls == []


def test_invalid_state_rejected(artifactory, run_main):
    result = run_main(artifactory_trashcan_config, dict(state='Latest'))
    assert result['failed'] is True
    assert 'state' in result['msg']
    assert artifactory.calls == []


def test_missing_required_suboption_rejected(artifactory, run_main):
    result = run_main(artifactory_package_cleanup_policy, dict(policies=[dict(description='no key')]))
    assert result['failed'] is True
    assert 'key' in result['msg']
    assert artifactory.calls == []


def test_check_mode_flag_reaches_api(artifactory, run_main):
    artifactory.route('GET', artifactory_base_url.BASE_URL_ENDPOINT, {'baseUrl': 'https://old.example.com'})
    result = run_main(artifactory_base_url, dict(base_url='https://lb.example.com'), check_mode=True)
    assert result['changed'] is True
    assert artifactory.writes() == []


def test_archive_policy_months_default(artifactory, run_main):
    artifactory.route('GET', ARCHIVE_POLICIES, [])
    result = run_main(artifactory_archive_policy, dict(policies=[dict(
        key='maven-cold',
        search_criteria=dict(package_types=['maven'], repos=['**'], included_packages=['**']),
    )]))
    assert result['added'] == ['maven-cold']
    criteria = artifactory.writes()[0]['content']['searchCriteria']
    assert criteria['createdBeforeInMonths'] == 24
    assert criteria['lastDownloadedBeforeInMonths'] == 24


def test_oauth_provider_defaults(artifactory, run_main):
    artifactory.route('GET', artifactory_oauth_settings.OAUTH_ENDPOINT, {'providers': []})
    result = run_main(artifactory_oauth_settings, dict(providers=[dict(
        name='github',
        type='github',
        client_id='client',
        client_secret='s3cr3t',
        api_url='https://api.github.com/user',
        auth_url='https://github.com/login/oauth/authorize',
        token_url='https://github.com/login/oauth/access_token',
    )]))
    assert result['changed'] is True
    settings = artifactory.patches()[0]['security']['oauthSettings']
    assert settings['enableIntegration'] is True
    assert settings['persistUsers'] is False
    assert settings['oauthProvidersSettings']['github']['enabled'] is True


def test_oauth_provider_missing_url_rejected(artifactory, run_main):
    result = run_main(artifactory_oauth_settings, dict(providers=[dict(name='github', type='github', client_id='c', client_secret='s')]))
    assert result['failed'] is True
    assert 'api_url' in result['msg']
    assert artifactory.calls == []
