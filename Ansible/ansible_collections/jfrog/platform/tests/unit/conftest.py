# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

"""Shared fixtures: a fake Artifactory behind ArtifactoryClient._sendRequest and two module runners."""
import json
from unittest.mock import MagicMock, patch

import pytest
import yaml
from ansible.module_utils import basic
from ansible.module_utils.common.text.converters import to_bytes

from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi import ArtifactoryClient
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryConfiguration import CONFIGURATION_ENDPOINT

CONNECTION = dict(
    artifactory_base_url='https://artifactory.example.com',
    auth_type='AccessToken',
    auth_string='token',
    ignore_ca_error=False,
    timeout=30,
    check_license=False,
)


class AnsibleExitJson(Exception):
    def __init__(self, result):
        super().__init__('exit_json')
        self.result = result


class AnsibleFailJson(Exception):
    def __init__(self, result):
        super().__init__('fail_json')
        self.result = result


def _exitJson(**kwargs):
    raise AnsibleExitJson(kwargs)


def _failJson(**kwargs):
    kwargs['failed'] = True
    raise AnsibleFailJson(kwargs)


class FakeArtifactory():
    """Answers _sendRequest calls from a (method, urltail) route table and records every call."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def route(self, method, urltail, response):
        self.routes[(method, urltail)] = response

    def configuration(self, xml):
        self.route('GET', CONFIGURATION_ENDPOINT, xml)

    def __call__(self, urltail, method='GET', content=None, contentType='application/json', retryOnMergeError=False):
        self.calls.append(dict(method=method, urltail=urltail, content=content, contentType=contentType,
                               retryOnMergeError=retryOnMergeError))
        response = self.routes.get((method, urltail))
        if isinstance(response, Exception):
            raise response
        return response

    def writes(self):
        return [call for call in self.calls if call['method'] != 'GET']

    def patches(self):
        """The YAML documents sent to the configuration endpoint, parsed."""
        return [yaml.safe_load(call['content']) for call in self.calls
                if call['method'] == 'PATCH' and call['urltail'] == CONFIGURATION_ENDPOINT]


@pytest.fixture(autouse=True)
def merge_wait():
    """Replaces the pause between merge-conflict retries."""
    with patch('ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi.time') as fakeTime:
        yield fakeTime.sleep


@pytest.fixture
def artifactory():
    fake = FakeArtifactory()
    with patch.object(ArtifactoryClient, '_sendRequest', new=fake):
        yield fake


@pytest.fixture
def run_module():
    """Runs a module's run_module() with AnsibleModule replaced by a mock.

    Returns (result, module).  result carries failed=True when the module called fail_json.
    Argument spec defaults are not applied, so params must be complete.  run_main goes through the argument spec.
    """
    def runner(moduleUnderTest, params, check_mode=False):
        module = MagicMock()
        module.params = dict(CONNECTION, **params)
        module.check_mode = check_mode
        module.exit_json.side_effect = _exitJson
        module.fail_json.side_effect = _failJson
        with patch.object(moduleUnderTest, 'AnsibleModule', return_value=module):
            try:
                moduleUnderTest.run_module()
            except (AnsibleExitJson, AnsibleFailJson) as e:
                return e.result, module
        raise AssertionError('module returned without calling exit_json or fail_json')
    return runner


def _exitModule(self, **kwargs):
    raise AnsibleExitJson(kwargs)


def _failModule(self, **kwargs):
    kwargs['failed'] = True
    raise AnsibleFailJson(kwargs)


@pytest.fixture
def run_main(monkeypatch):
    """Runs a module's main() through the real AnsibleModule, so argument spec
    defaults, aliases, choices and required checks all apply.

    Returns the result dictionary.  It carries failed=True when the module called fail_json.
    """
    def runner(moduleUnderTest, args, check_mode=False):
        moduleArgs = dict(artifactory_base_url=CONNECTION['artifactory_base_url'],
                          auth_string=CONNECTION['auth_string'], **args)
        if check_mode:
            moduleArgs['_ansible_check_mode'] = True
        monkeypatch.setattr(basic, '_ANSIBLE_ARGS', to_bytes(json.dumps({'ANSIBLE_MODULE_ARGS': moduleArgs})))
        monkeypatch.setattr(basic, '_ANSIBLE_PROFILE', 'legacy', raising=False)
        with patch.multiple(basic.AnsibleModule, exit_json=_exitModule, fail_json=_failModule):
            try:
                moduleUnderTest.main()
            except (AnsibleExitJson, AnsibleFailJson) as e:
                return e.result
        raise AssertionError('module returned without calling exit_json or fail_json')
    return runner
