# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

import base64
import io
import json
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from ansible_collections.jfrog.platform.plugins.module_utils import ArtifactoryApi as apiModule
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi import (
    MERGE_RETRY_COUNT,
    MERGE_RETRY_WAIT,
    USER_AGENT,
    ArtifactoryApi,
    ArtifactoryApiError,
    ArtifactoryClient,
    ArtifactorySingletonApi,
    ConfigRecord,
    applySingletonState,
    applyState,
    failFromError,
    prepareConnection,
)

BASE_URL = 'https://artifactory.example.com'
MERGE_ERROR_BODY = '{"errors":[{"message":"Could not merge and save new descriptor"}]}'


def client(**kwargs):
    return ArtifactoryClient(BASE_URL, kwargs.pop('auth_type', 'AccessToken'), kwargs.pop('auth_string', 'token'), **kwargs)


class InMemoryApi(ArtifactoryApi):
    _ignoredFields = ('secret',)

    def __init__(self, stored, **kwargs):
        self.stored = stored
        self.writes = []
        super().__init__(BASE_URL, 'AccessToken', 'token', **kwargs)

    def _getRecordKeyList(self):
        return ['key']

    def _getConfigRecordListFromArtifactory(self):
        return [self._newRecord(dict(record)) for record in self.stored]

    def _addToArtifactory(self, configRecord):
        self.writes.append(('add', configRecord['key']))

    def _updateInArtifactory(self, configRecord, artifactoryRecord):
        self.writes.append(('update', configRecord['key']))

    def _deleteFromArtifactory(self, configRecord):
        self.writes.append(('delete', configRecord['key']))


class InMemorySingleton(ArtifactorySingletonApi):
    _ignoredFields = ('password',)

    def __init__(self, current, default=None, **kwargs):
        self.current = current
        self.default = default
        self.written = []
        self.deleted = False
        super().__init__(BASE_URL, 'AccessToken', 'token', **kwargs)

    def _getConfigFromArtifactory(self):
        return self.current

    def _setInArtifactory(self, config):
        self.written.append(config)

    def _deleteFromArtifactory(self, config):
        self.deleted = True

    def _isDefault(self, config):
        return config == self.default


# ---------------------------------------------------------------- connection


def test_access_token_header():
    api = client(auth_type='AccessToken', auth_string='abc')
    assert api.headers['Authorization'] == 'Bearer abc'
    assert api.headers['User-Agent'] == USER_AGENT


def test_api_key_header_is_case_insensitive():
    api = client(auth_type='apikey', auth_string='key')
    assert api.headers['X-JFrog-Art-Api'] == 'key'
    assert 'Authorization' not in api.headers


def test_basic_auth_is_base64_encoded():
    api = client(auth_type='Basic', auth_string='admin:password')
    expected = base64.standard_b64encode(b'admin:password').decode('ascii')
    assert api.headers['Authorization'] == 'Basic ' + expected


def test_basic_auth_requires_colon():
    with pytest.raises(ValueError):
        client(auth_type='Basic', auth_string='admin')


def test_unknown_auth_type_rejected():
    with pytest.raises(ValueError):
        client(auth_type='Kerberos')


def test_base_url_gets_single_trailing_slash():
    api = ArtifactoryClient(BASE_URL + '//', 'AccessToken', 'token')
    assert api.baseUrl == BASE_URL + '/'


# ---------------------------------------------------------------- requests


def test_send_request_encodes_json_content():
    api = client()
    with patch.object(api, '_open', return_value=None) as opened:
        api._sendRequest('/artifactory/api/things', 'POST', {'a': 1})
    method, url, data, headers = opened.call_args[0]
    assert method == 'POST'
    assert url == BASE_URL + '/artifactory/api/things'
    assert json.loads(data) == {'a': 1}
    assert headers['Content-Type'] == 'application/json'


def test_send_request_keeps_text_content():
    api = client()
    with patch.object(api, '_open', return_value=None) as opened:
        api._sendRequest('x', 'PUT', 'https://new', contentType='text/plain')
    method, url, data, headers = opened.call_args[0]
    assert data == b'https://new'
    assert headers['Content-Type'] == 'text/plain'
    assert 'Content-Type' not in api.headers


def test_merge_conflict_is_retried(merge_wait):
    api = client()
    conflict = ArtifactoryApiError(500, 'PATCH', 'x', MERGE_ERROR_BODY)
    with patch.object(api, '_open', side_effect=[conflict, conflict, {'ok': True}]) as opened:
        assert api._sendRequest('x', 'PATCH', 'a: 1', retryOnMergeError=True) == {'ok': True}
    assert opened.call_count == 3
    assert [call.args[0] for call in merge_wait.call_args_list] == [MERGE_RETRY_WAIT, MERGE_RETRY_WAIT * 2]


def test_merge_conflict_retries_are_bounded():
    api = client()
    conflict = ArtifactoryApiError(500, 'PATCH', 'x', MERGE_ERROR_BODY)
    with patch.object(api, '_open', side_effect=conflict) as opened:
        with pytest.raises(ArtifactoryApiError):
            api._sendRequest('x', 'PATCH', 'a: 1', retryOnMergeError=True)
    assert opened.call_count == MERGE_RETRY_COUNT + 1


def test_merge_conflict_not_retried_without_flag(merge_wait):
    api = client()
    conflict = ArtifactoryApiError(500, 'PATCH', 'x', MERGE_ERROR_BODY)
    with patch.object(api, '_open', side_effect=conflict) as opened:
        with pytest.raises(ArtifactoryApiError):
            api._sendRequest('x', 'PATCH', 'a: 1')
    assert opened.call_count == 1
    merge_wait.assert_not_called()


def test_other_errors_are_not_retried():
    api = client()
    with patch.object(api, '_open', side_effect=ArtifactoryApiError(400, 'PATCH', 'x', 'bad yaml')) as opened:
        with pytest.raises(ArtifactoryApiError) as raised:
            api._sendRequest('x', 'PATCH', 'a: 1', retryOnMergeError=True)
    assert opened.call_count == 1
    assert raised.value.status == 400


def _response(body, contentType):
    response = MagicMock()
    response.read.return_value = body
    response.headers = {'Content-Type': contentType}
    return response


def test_open_parses_json_response():
    api = client()
    with patch.object(apiModule.urls, 'Request') as request:
        request.return_value.open.return_value = _response(b'{"type": "Enterprise"}', 'application/json')
        assert api._sendRequest('artifactory/api/system/license') == {'type': 'Enterprise'}
    assert request.call_args[1]['validate_certs'] is True
    assert request.call_args[1]['timeout'] == 30


def test_open_returns_text_for_xml():
    api = client(ignore_ca_error=True)
    with patch.object(apiModule.urls, 'Request') as request:
        request.return_value.open.return_value = _response(b'<config/>', 'application/xml')
        assert api._sendRequest('artifactory/api/system/configuration') == '<config/>'
    assert request.call_args[1]['validate_certs'] is False


def test_open_returns_none_for_empty_body():
    api = client()
    with patch.object(apiModule.urls, 'Request') as request:
        request.return_value.open.return_value = _response(b'', 'text/plain')
        assert api._sendRequest('x', 'DELETE') is None


def test_http_error_becomes_api_error():
    api = client()
    error = HTTPError(BASE_URL + '/x', 404, 'Not Found', {}, io.BytesIO(b'missing'))
    with patch.object(apiModule.urls, 'Request') as request:
        request.return_value.open.side_effect = error
        with pytest.raises(ArtifactoryApiError) as raised:
            api._sendRequest('x')
    assert raised.value.status == 404
    assert raised.value.isNotFound
    assert raised.value.body == 'missing'
    assert raised.value.method == 'GET'


def test_transport_error_has_no_status():
    api = client()
    with patch.object(apiModule.urls, 'Request') as request:
        request.return_value.open.side_effect = URLError('connection refused')
        with pytest.raises(ArtifactoryApiError) as raised:
            api._sendRequest('x')
    assert raised.value.status is None
    assert 'connection refused' in str(raised.value)


# ---------------------------------------------------------------- license


@pytest.mark.parametrize('license', [
    {'type': 'Enterprise Plus'},
    {'type': 'Commercial'},
    {'licenses': [{'type': 'Edge'}, {'type': 'Trial'}]},
])
def test_license_accepted(license):
    api = client()
    with patch.object(api, '_sendRequest', return_value=license):
        assert api.checkLicense()


def test_oss_license_rejected():
    api = client()
    with patch.object(api, '_sendRequest', return_value={'type': 'OSS'}):
        with pytest.raises(ArtifactoryApiError):
            api.checkLicense()


# ---------------------------------------------------------------- ConfigRecord


def test_record_equality_uses_key_fields_only():
    assert ConfigRecord({'key': 'a', 'v': 1}, ['key']) == ConfigRecord({'key': 'a', 'v': 2}, ['key'])
    assert ConfigRecord({'key': 'a'}, ['key']) != ConfigRecord({'key': 'A'}, ['key'])


def test_record_case_insensitive_keys():
    assert ConfigRecord({'key': 'Libs'}, ['key'], caseInsensitiveKeys=True) == ConfigRecord({'key': 'libs'}, ['key'], caseInsensitiveKeys=True)


def test_record_parses_json_string():
    record = ConfigRecord('{"key": "a", "rclass": "local"}', ['key'])
    assert record['rclass'] == 'local'


def test_record_key_string_joins_key_fields():
    assert ConfigRecord({'org': 'x', 'name': 'y'}, ['org', 'name']).keyString() == 'x/y'


def test_deep_equals_skips_ignored_fields():
    mine = ConfigRecord({'key': 'a', 'search': {'managerPassword': 'plain', 'base': 'x'}}, ['key'], ['search.managerPassword'])
    theirs = ConfigRecord({'key': 'a', 'search': {'managerPassword': 'encrypted', 'base': 'x'}}, ['key'], ['search.managerPassword'])
    assert mine.deepEquals(theirs)
    theirs.record['search']['base'] = 'y'
    assert not mine.deepEquals(theirs)


def test_deep_equals_wildcard_skips_field_of_every_entry():
    ignored = ['providers.*.secret']
    mine = ConfigRecord({'providers': {'github': {'secret': 'plain', 'id': 'a'}, 'okta': {'secret': 's'}}}, [], ignored)
    theirs = ConfigRecord({'providers': {'github': {'secret': 'hash', 'id': 'a'}, 'okta': {'secret': 'h'}}}, [], ignored)
    assert mine.deepEquals(theirs)
    theirs.record['providers']['github']['id'] = 'b'
    assert not mine.deepEquals(theirs)
    assert mine.record['providers']['github']['secret'] == 'plain'


def test_merged_is_deep_and_leaves_original_alone():
    current = ConfigRecord({'key': 'a', 'search': {'base': 'x', 'filter': 'f'}}, ['key'])
    future = current.merged({'search': {'base': 'y'}})
    assert future.record == {'key': 'a', 'search': {'base': 'y', 'filter': 'f'}}
    assert current.record['search']['base'] == 'x'


# ---------------------------------------------------------------- keyed reconciliation


def test_apply_adds_and_updates():
    api = InMemoryApi([{'key': 'a', 'v': 1}, {'key': 'b', 'v': 2}])
    assert api.applyConfigs([{'key': 'a', 'v': 1}, {'key': 'b', 'v': 3}, {'key': 'c', 'v': 1}])
    assert api.writes == [('add', 'c'), ('update', 'b')]
    assert api.changes == {'added': ['c'], 'updated': ['b'], 'deleted': []}


def test_apply_unchanged():
    api = InMemoryApi([{'key': 'a', 'v': 1, 'extra': True}])
    assert not api.applyConfigs([{'key': 'a', 'v': 1}])
    assert api.writes == []


def test_apply_ignores_write_only_fields():
    api = InMemoryApi([{'key': 'a', 'secret': 'encrypted'}])
    assert not api.applyConfigs([{'key': 'a', 'secret': 'plain'}])


def test_delete_only_touches_existing():
    api = InMemoryApi([{'key': 'a'}, {'key': 'b'}])
    assert api.deleteConfigs([{'key': 'a'}, {'key': 'missing'}])
    assert api.writes == [('delete', 'a')]
    assert not InMemoryApi([]).deleteConfigs([{'key': 'a'}])


def test_prune_removes_unlisted():
    api = InMemoryApi([{'key': 'a', 'v': 1}, {'key': 'b', 'v': 1}])
    assert api.pruneConfigs([{'key': 'a', 'v': 1}])
    assert api.writes == [('delete', 'b')]
    assert api.changes['deleted'] == ['b']


def test_check_mode_reports_without_writing():
    api = InMemoryApi([{'key': 'a', 'v': 1}, {'key': 'b', 'v': 1}], inCheckMode=True)
    assert api.pruneConfigs([{'key': 'a', 'v': 2}, {'key': 'c'}])
    assert api.writes == []
    assert api.changes == {'added': ['c'], 'updated': ['a'], 'deleted': ['b']}


def test_duplicate_keys_rejected():
    with pytest.raises(ValueError):
        InMemoryApi([]).applyConfigs([{'key': 'a'}, {'key': 'a'}])


def test_apply_state_dispatch():
    api = MagicMock()
    applyState(api, 'Present', [])
    applyState(api, 'absent', [])
    applyState(api, 'PRUNE', [])
    api.applyConfigs.assert_called_once_with([])
    api.deleteConfigs.assert_called_once_with([])
    api.pruneConfigs.assert_called_once_with([])
    with pytest.raises(ValueError):
        applyState(api, 'latest', [])


# ---------------------------------------------------------------- singleton reconciliation


def test_singleton_written_when_missing():
    api = InMemorySingleton(None)
    assert api.applyConfig({'enabled': True})
    assert api.written == [{'enabled': True}]


def test_singleton_unchanged_ignores_password():
    api = InMemorySingleton({'host': 'smtp', 'password': 'encrypted'})
    assert not api.applyConfig({'host': 'smtp', 'password': 'plain'})
    assert api.written == []


def test_singleton_check_mode():
    api = InMemorySingleton({'host': 'old'}, inCheckMode=True)
    assert api.applyConfig({'host': 'new'})
    assert api.written == []


def test_singleton_delete():
    assert not InMemorySingleton(None).deleteConfig()
    assert not InMemorySingleton({'days': 14}, default={'days': 14}).deleteConfig()
    api = InMemorySingleton({'days': 30}, default={'days': 14})
    assert api.deleteConfig()
    assert api.deleted


class TrimmingSingleton(InMemorySingleton):

    def _completeConfig(self, config, currentConfig):
        stale = set((currentConfig or {}).get('items', {})) - set(config['items'])
        return dict(config, items=dict(config['items'], **dict.fromkeys(stale)))


def test_singleton_completed_config_drops_stale_entries():
    api = TrimmingSingleton({'items': {'a': 1, 'b': 2}})
    assert api.applyConfig({'items': {'a': 1}})
    assert api.written == [{'items': {'a': 1, 'b': None}}]
    assert not TrimmingSingleton({'items': {'a': 1}}).applyConfig({'items': {'a': 1}})


def test_apply_singleton_state_rejects_prune():
    with pytest.raises(ValueError):
        applySingletonState(MagicMock(), 'Prune', {})


# ---------------------------------------------------------------- module helpers


def test_fail_from_api_error_reports_status():
    module = MagicMock()
    failFromError(module, ArtifactoryApiError(404, 'GET', 'u', 'nope'), {'changed': False})
    module.fail_json.assert_called_once_with(msg='GET u returned 404: nope', status=404, body='nope', changed=False)


def test_fail_from_value_error():
    module = MagicMock()
    failFromError(module, ValueError('bad'), {'changed': False})
    module.fail_json.assert_called_once_with(msg='bad', changed=False)


def test_prepare_connection_warns_and_checks_license():
    module = MagicMock()
    module.params = {'ignore_ca_error': True, 'check_license': True}
    api = MagicMock()
    api.checkLicense.return_value = 'Enterprise'
    prepareConnection(module, api)
    module.warn.assert_called_once()
    api.checkLicense.assert_called_once_with()
