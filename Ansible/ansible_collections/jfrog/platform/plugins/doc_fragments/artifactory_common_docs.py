#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole


class ModuleDocFragment(object):
    DOCUMENTATION = r'''
options:
    artifactory_base_url:
        description:
        - Base url of the artifactory server.  It must include the schema (http or https), the fqdn, and port
            number (if not 80 or 443).
        - Falls back to the C(JFROG_URL) or C(ARTIFACTORY_URL) environment variables.
        required: True
        type: str
    auth_type:
        description:
        - Specifies which authentication type to use with artifactory's API.  Basic auth uses an admin's username
            and password.
        choices:
        - Basic
        - AccessToken
        - ApiKey
        default: AccessToken
        type: str
        required: False
    auth_string:
        description:
        - The authentication string to be provided in artifactory api calls.  Paired with selection given in "auth_type".
        - Basic auth requires that auth_string be provided in the format "username:password".  The plugin performs the base64 encoding.
        - AccessToken and ApiKey require that auth_string be the access token or api key.
        - Falls back to the C(JFROG_ACCESS_TOKEN) or C(ARTIFACTORY_ACCESS_TOKEN) environment variables.
        required: True
        type: str
    ignore_ca_error:
        description:
        - Flag to disable CA verification.  Opens API calls to MITM attack.  Do not use in production environments.
        - Falls back to the C(JFROG_BYPASS_TLS_VERIFICATION) environment variable.
        default: False
        required: False
        type: bool
    timeout:
        description:
        - Timeout in seconds of each API call.
        default: 30
        required: False
        type: int
    check_license:
        description:
        - Verify that Artifactory runs an Enterprise, Commercial or Edge license before changing anything.
        default: False
        required: False
        type: bool

requirements:
    - Python >= 3.8
    - PyYAML

notes:
    - Check mode is supported.
'''

    STATE = r'''
options:
    state:
        description:
        - Desired state of the configuration after execution.
        - "Present" ensures configurations are present in artifactory and match what has been defined
        - "Absent" ensures matching configurations are deleted
        - "Prune" ensures that only matching configurations are present.  All other configurations are deleted.
        default: Present
        choices:
        - Present
        - Absent
        - Prune
        type: str
'''

    SINGLETON_STATE = r'''
options:
    state:
        description:
        - Desired state of the configuration block after execution.
        - "Present" ensures the block matches what has been defined
        - "Absent" removes the block, or resets it to its defaults when Artifactory cannot remove it
        default: Present
        choices:
        - Present
        - Absent
        type: str
'''
