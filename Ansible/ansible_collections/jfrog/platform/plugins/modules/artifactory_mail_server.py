#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_mail_server

short_description: Configures the mail server Artifactory uses to send notifications

version_added: "1.0.0"

description:
    - Sets or removes the C(mailServer) block of the Artifactory system configuration
      (REST endpoint artifactory/api/system/configuration).
    - The password is write-only.  Artifactory returns it encrypted, so a changed password alone is
      never detected as drift.

options:
    enabled:
        description: When set, mail notifications are enabled.
        type: bool
        default: True
    artifactory_url:
        description: The Artifactory URL to link to in all outgoing mail notifications.
        type: str
        default: ''
    host:
        description: The host name of the mail server.  Required unless I(state=Absent).
        type: str
    port:
        description: The port number of the mail server.  Required unless I(state=Absent).
        type: int
    from_address:
        description: The "from" address header to use in all outgoing mails.
        type: str
        default: ''
        aliases:
          - from
    username:
        description: The username for authentication with the mail server.
        type: str
        default: ''
    password:
        description: The password for authentication with the mail server.
        type: str
        default: ''
    subject_prefix:
        description: A prefix to use for the subject of all outgoing mails.
        type: str
        default: '[Artifactory]'
    use_ssl:
        description: When set, uses a secure connection to the mail server.
        type: bool
        default: False
    use_tls:
        description: When set, uses Transport Layer Security when connecting to the mail server.
        type: bool
        default: False

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.singleton_state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Send notifications through the corporate relay
  jfrog.platform.artifactory_mail_server:
    host: smtp.example.com
    port: 587
    from_address: artifactory@example.com
    username: artifactory
    password: "{{ smtp_password }}"
    use_tls: true
    artifactory_url: https://artifactory.example.com
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"

- name: Stop sending mail
  jfrog.platform.artifactory_mail_server:
    state: Absent
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Mail server modified'
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
    xmlText,
)


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        enabled=dict(type='bool', default=True),
        artifactory_url=dict(type='str', default=''),
        host=dict(type='str'),
        port=dict(type='int'),
        from_address=dict(type='str', default='', aliases=['from']),
        username=dict(type='str', default=''),
        password=dict(type='str', default='', no_log=True),
        subject_prefix=dict(type='str', default='[Artifactory]'),
        use_ssl=dict(type='bool', default=False),
        use_tls=dict(type='bool', default=False),
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
        checkMailServer(module.params, module.params['state'])
        api = ArtifactoryMailServer(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applySingletonState(api, module.params['state'], toApiModel(module.params))
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    if result['changed']:
        result['message'] = "Mail server modified"
    else:
        result['message'] = "Mail server unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkMailServer(params, state):
    if str(state).lower() == 'absent':
        return
    if not params.get('host'):
        raise ValueError('"host" is required')
    if params.get('port') is None or not 1 <= params['port'] <= 65535:
        raise ValueError('"port" must be between 1 and 65535')


def toApiModel(params):
    return {
        'enabled': params['enabled'],
        'artifactoryUrl': params['artifactory_url'] or '',
        'from': params['from_address'] or '',
        'host': params['host'] or '',
        'username': params['username'] or '',
        'password': params['password'] or '',
        'port': params['port'],
        'subjectPrefix': params['subject_prefix'] or '',
        'ssl': params['use_ssl'],
        'tls': params['use_tls'],
    }


class ArtifactoryMailServer(ArtifactoryConfigurationSingletonApi):
    _patchKey = 'mailServer'
    _xmlPath = 'mailServer'
    _ignoredFields = ('password',)

    def _recordFromXml(self, elem):
        return {
            'enabled': xmlBool(elem, 'enabled'),
            'artifactoryUrl': xmlText(elem, 'artifactoryUrl'),
            'from': xmlText(elem, 'from'),
            'host': xmlText(elem, 'host'),
            'username': xmlText(elem, 'username'),
            'password': xmlText(elem, 'password'),
            'port': xmlInt(elem, 'port'),
            'subjectPrefix': xmlText(elem, 'subjectPrefix'),
            'ssl': xmlBool(elem, 'ssl'),
            'tls': xmlBool(elem, 'tls'),
        }


if __name__ == '__main__':
    main()
