#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_proxy

short_description: Manages the network proxies Artifactory uses for outgoing connections

version_added: "1.0.0"

description:
    - Adds, updates or removes proxies in the C(proxies) block of the Artifactory system configuration
      (REST endpoint artifactory/api/system/configuration).
    - Proxy passwords are write-only.  Artifactory returns them encrypted, so a changed password alone
      is never detected as drift.

options:
    proxies:
        description:
          - List of proxy configurations.  Only C(key) is needed when I(state=Absent).
        type: list
        elements: dict
        required: True
        suboptions:
            key:
                description: The unique ID of the proxy.
                type: str
                required: True
            host:
                description: The name of the proxy host.  Required unless I(state=Absent).
                type: str
            port:
                description: The proxy port number, between 0 and 65535.  Required unless I(state=Absent).
                type: int
            username:
                description: The proxy username when authentication credentials are required.
                type: str
                default: ''
            password:
                description: The proxy password when authentication credentials are required.
                type: str
                default: ''
            nt_host:
                description: The computer name of the machine (the machine connecting to the NTLM proxy).
                type: str
                default: ''
            nt_domain:
                description: The proxy domain/realm name.
                type: str
                default: ''
            platform_default:
                description:
                  - When set, this proxy will be the default proxy for new remote repositories and for internal HTTP requests
                    issued by Artifactory.
                  - I(services) cannot be set when this is true.
                type: bool
                default: False
            redirect_to_hosts:
                description: An optional list of host names to which this proxy may redirect requests.
                type: list
                elements: str
                default: []
            services:
                description: Services that will use this proxy.  Only applies when I(platform_default=false).
                type: list
                elements: str
                choices:
                  - jfrt
                  - jfmc
                  - jfxr
                  - jfds
                default: []

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Corporate proxy used by Artifactory and Xray
  jfrog.platform.artifactory_proxy:
    proxies:
      - key: corp-proxy
        host: proxy.example.com
        port: 3128
        username: svc-artifactory
        password: "{{ proxy_password }}"
        services:
          - jfrt
          - jfxr
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Proxies modified'
added:
    description: Keys of the proxies that were added
    type: list
    returned: always
updated:
    description: Keys of the proxies that were updated
    type: list
    returned: always
deleted:
    description: Keys of the proxies that were deleted
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
    joinCommaList,
    splitCommaList,
    xmlBool,
    xmlInt,
    xmlText,
)


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        proxies=dict(type='list', elements='dict', required=True, options=dict(
            key=dict(type='str', required=True, no_log=False),
            host=dict(type='str'),
            port=dict(type='int'),
            username=dict(type='str', default=''),
            password=dict(type='str', default='', no_log=True),
            nt_host=dict(type='str', default=''),
            nt_domain=dict(type='str', default=''),
            platform_default=dict(type='bool', default=False),
            redirect_to_hosts=dict(type='list', elements='str', default=[]),
            services=dict(type='list', elements='str', default=[], choices=['jfrt', 'jfmc', 'jfxr', 'jfds']),
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
        checkProxies(module.params['proxies'], module.params['state'])
        api = ArtifactoryProxy(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(proxy) for proxy in module.params['proxies']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "Proxies modified"
    else:
        result['message'] = "Proxies unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkProxies(proxies, state):
    for proxy in proxies:
        if not proxy['key']:
            raise ValueError('"key" must not be empty')
        if str(state).lower() == 'absent':
            continue
        if not proxy.get('host'):
            raise ValueError('Proxy %s needs "host"' % proxy['key'])
        if proxy.get('port') is None or not 0 <= proxy['port'] <= 65535:
            raise ValueError('Proxy %s needs "port" between 0 and 65535' % proxy['key'])
        if proxy['platform_default'] and proxy['services']:
            raise ValueError('Proxy %s: services cannot be set when platform_default is true' % proxy['key'])


def toApiModel(proxy):
    return {
        'key': proxy['key'],
        'host': proxy['host'] or '',
        'port': proxy['port'],
        'username': proxy['username'] or '',
        'password': proxy['password'] or '',
        'ntHost': proxy['nt_host'] or '',
        'domain': proxy['nt_domain'] or '',
        'platformDefault': proxy['platform_default'],
        'redirectedToHosts': sorted(proxy['redirect_to_hosts'] or []),
        'services': sorted(proxy['services'] or []),
    }


class ArtifactoryProxy(ArtifactoryConfigurationApi):
    _patchPath = ('proxies',)
    _xmlPath = 'proxies/proxy'
    _keyField = 'key'
    _ignoredFields = ('password',)

    def _recordFromXml(self, elem):
        return {
            'key': xmlText(elem, 'key'),
            'host': xmlText(elem, 'host'),
            'port': xmlInt(elem, 'port'),
            'username': xmlText(elem, 'username'),
            'password': xmlText(elem, 'password'),
            'ntHost': xmlText(elem, 'ntHost'),
            'domain': xmlText(elem, 'domain'),
            'platformDefault': xmlBool(elem, 'platformDefault'),
            'redirectedToHosts': splitCommaList(xmlText(elem, 'redirectedToHosts')),
            'services': splitCommaList(xmlText(elem, 'services')),
        }

    def _recordToPatchBody(self, record):
        # the key addresses the block in the PATCH document and is not part of it
        body = dict(record)
        del body['key']
        body['redirectedToHosts'] = joinCommaList(record['redirectedToHosts'])
        body['services'] = joinCommaList(record['services'])
        return body


if __name__ == '__main__':
    main()
