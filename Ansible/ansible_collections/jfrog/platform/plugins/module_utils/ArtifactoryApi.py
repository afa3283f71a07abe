# Public Domain: Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

'''
This library is used for declaratively defining a desired configuration state
and applying it using Create, Read, Update, Delete operations against the
Artifactory REST API.  Keyed collections (backups, proxies, policies...) are
reconciled as lists of records; singleton blocks (mail server, trash can...)
are reconciled as a single record.
'''

import base64
import copy
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from urllib.error import HTTPError, URLError

from ansible.module_utils import urls
from ansible.module_utils.basic import env_fallback

logger = logging.getLogger(__name__)

USER_AGENT = 'jfrog/ansible-collection-platform'
MERGE_RETRY_COUNT = 5
# seconds, grows with each attempt
MERGE_RETRY_WAIT = 0.5
_MERGE_ERROR = re.compile(r'Could not merge and save new descriptor')
_LICENSE_TYPES = re.compile(r'Enterprise|Commercial|Edge')


class ArtifactoryApiError(Exception):
    '''Raised when Artifactory answers with a non-success status or cannot be reached.
    status is None for transport failures.'''

    def __init__(self, status, method, url, body=''):
        self.status = status
        self.method = method
        self.url = url
        self.body = body
        if status is None:
            message = '%s %s failed: %s' % (method, url, body)
        else:
            message = '%s %s returned %s: %s' % (method, url, status, body)
        super().__init__(message)

    @property
    def isNotFound(self):
        return self.status == 404


def commonArgumentSpec():
    '''Returns the connection options shared by every module in the collection.
    Matches the jfrog.platform.artifactory_common_docs doc fragment.'''
    return dict(
        artifactory_base_url=dict(type='str', required=True,
                                  fallback=(env_fallback, ['JFROG_URL', 'ARTIFACTORY_URL'])),
        auth_type=dict(type='str', required=False, default='AccessToken',
                       choices=['Basic', 'AccessToken', 'ApiKey', 'basic', 'accesstoken', 'apikey']),
        auth_string=dict(type='str', required=True, no_log=True,
                         fallback=(env_fallback, ['JFROG_ACCESS_TOKEN', 'ARTIFACTORY_ACCESS_TOKEN'])),
        ignore_ca_error=dict(type='bool', required=False, default=False,
                             fallback=(env_fallback, ['JFROG_BYPASS_TLS_VERIFICATION'])),
        timeout=dict(type='int', required=False, default=30),
        check_license=dict(type='bool', required=False, default=False),
    )


KEYED_STATES = ['Present', 'Absent', 'Prune', 'present', 'absent', 'prune']
SINGLETON_STATES = ['Present', 'Absent', 'present', 'absent']


def connectionParams(module):
    '''Picks the ArtifactoryClient constructor arguments out of the module parameters.'''
    return dict(
        artifactory_base_url=module.params['artifactory_base_url'],
        auth_type=module.params['auth_type'],
        auth_string=module.params['auth_string'],
        ignore_ca_error=module.params['ignore_ca_error'],
        inCheckMode=module.check_mode,
        timeout=module.params['timeout'],
    )


def applyState(api, state, configs):
    '''Dispatches a keyed module's state to the matching ArtifactoryApi operation.
    :return: True if something has changed.
    '''
    state = str(state).lower()
    if state == 'present':
        return api.applyConfigs(configs)
    if state == 'absent':
        return api.deleteConfigs(configs)
    if state == 'prune':
        return api.pruneConfigs(configs)
    raise ValueError('State was not set to a valid value.  Must be Present, Absent, or Prune')


def applySingletonState(api, state, config):
    '''Dispatches a singleton module's state to the matching ArtifactorySingletonApi operation.
    :return: True if something has changed.
    '''
    state = str(state).lower()
    if state == 'present':
        return api.applyConfig(config)
    if state == 'absent':
        return api.deleteConfig()
    raise ValueError('State was not set to a valid value.  Must be Present or Absent')


def prepareConnection(module, api):
    '''Warns about disabled certificate validation and runs the optional license check.'''
    if module.params['ignore_ca_error']:
        module.warn('API calls to Artifactory are not validating CA certs. Auth tokens vulnerable to MITM attack.')
    if module.params['check_license']:
        licenseType = api.checkLicense()
        module.debug('Artifactory license: %s' % licenseType)


def failFromError(module, error, result):
    '''Turns an API or validation error into a failed task.'''
    if isinstance(error, ArtifactoryApiError):
        module.fail_json(msg=str(error), status=error.status, body=error.body, **result)
    else:
        module.fail_json(msg=str(error), **result)


class ArtifactoryClient():
    '''Connection to an Artifactory server: authentication, request sending, error mapping.'''

    def __init__(self, artifactory_base_url, auth_type, auth_string, ignore_ca_error=False, inCheckMode=False, timeout=30):
        '''Creates a new Artifactory API endpoint object.

        :param artifactory_base_url: Contains the schema, hostname, and port number (if not default) for the Artifactory server
        :param auth_type: Must be "accesstoken", "apikey", or "basic" (case-insensitive)
        :param auth_string: For auth_type="accesstoken", it is the access token string.
            For auth_type="apikey", it is the api key.
            For auth_type="basic", is is the username and password joined with a colon in the format "username:password".
        :param ignore_ca_error: Defaults to false.  When set to true, API calls to Artifactory will skip cert verification.
        :param inCheckMode: Defaults to false.  When set to true, no changes will be made to Artifactory, but functions will still
            return as if they had.
        :param timeout: Request timeout in seconds.
        '''
        if not artifactory_base_url:
            raise ValueError('"artifactory_base_url" is a required argument')
        self.baseUrl = artifactory_base_url.rstrip('/') + '/'

        authType = str(auth_type).lower()
        if authType == 'accesstoken':
            self.headers = {'Authorization': 'Bearer ' + auth_string}
        elif authType == 'apikey':
            self.headers = {'X-JFrog-Art-Api': auth_string}
        elif authType == 'basic':
            if ':' not in auth_string:
                raise ValueError('Basic auth_type requires that username and password be provided in auth_string in the format username:password')
            encoded = base64.standard_b64encode(auth_string.encode('utf-8')).decode('ascii')
            self.headers = {'Authorization': 'Basic ' + encoded}
        else:
            raise ValueError('"auth_type" must be "Basic", "AccessToken", or "ApiKey"')
        self.headers['User-Agent'] = USER_AGENT
        self.headers['Accept'] = '*/*'

        self.ignore_ca_error = ignore_ca_error
        self.inCheckMode = inCheckMode
        self.timeout = timeout

    def checkLicense(self):
        '''Verifies that the server runs a license that allows configuration management.
        :raises ArtifactoryApiError: when the license type is not Enterprise, Commercial or Edge.
        '''
        license = self._sendRequest('artifactory/api/system/license') or {}
        # HA installations report a list of licenses instead of a single one
        if license.get('licenses'):
            licenseType = license['licenses'][0].get('type', '')
        else:
            licenseType = license.get('type', '')
        if not _LICENSE_TYPES.search(licenseType or ''):
            raise ArtifactoryApiError(None, 'GET', self.baseUrl + 'artifactory/api/system/license',
                                      'Artifactory requires Pro, Enterprise or Edge license to be managed by this collection. '
                                      'Set check_license to false to skip this check')
        return licenseType

    def _sendRequest(self, urltail, method='GET', content=None, contentType='application/json', retryOnMergeError=False):
        '''This helper function uses self.baseUrl and urltail to send a request and return a parsed object
        :param content: str, bytes, or a JSON serializable object (encoded when contentType is JSON)
        :param retryOnMergeError: retry writes that collided with a concurrent configuration save
        :returns: Parsed JSON object (List or Dictionary), the response text, or None for an empty body
        '''
        url = self.baseUrl + urltail.lstrip('/')
        data = content
        headers = dict(self.headers)
        if content is not None:
            if not isinstance(content, (str, bytes)):
                data = json.dumps(content)
            if isinstance(data, str):
                data = data.encode('utf-8')
            headers['Content-Type'] = contentType

        attempts = MERGE_RETRY_COUNT + 1 if retryOnMergeError else 1
        for attempt in range(1, attempts + 1):
            logger.debug('%s %s (attempt %d)', method, url, attempt)
            try:
                return self._open(method, url, data, headers)
            except ArtifactoryApiError as e:
                if attempt < attempts and e.body and _MERGE_ERROR.search(e.body):
                    logger.debug('merge conflict on %s %s, retrying', method, url)
                    time.sleep(MERGE_RETRY_WAIT * attempt)
                    continue
                raise

    def _open(self, method, url, data, headers):
        request = urls.Request(headers=headers, validate_certs=not self.ignore_ca_error, timeout=self.timeout)
        try:
            response = request.open(method, url, data=data)
        except HTTPError as e:
            body = _readBody(e)
            logger.debug('%s %s -> %s', method, url, e.code)
            raise ArtifactoryApiError(e.code, method, url, body)
        except (URLError, urls.ConnectionError, OSError) as e:
            raise ArtifactoryApiError(None, method, url, str(e))

        body = _readBody(response)
        if not body:
            return None
        contentType = ''
        if getattr(response, 'headers', None) is not None:
            contentType = response.headers.get('Content-Type', '') or ''
        if 'json' in contentType or (not contentType and body[:1] in ('{', '[')):
            return json.loads(body)
        return body


def _readBody(response):
    try:
        raw = response.read()
    except (AttributeError, OSError):
        return ''
    if raw is None:
        return ''
    if isinstance(raw, bytes):
        return raw.decode('utf-8', errors='replace')
    return raw


class ArtifactoryApi(ArtifactoryClient, ABC):
    '''This abstract class defines an Artifactory API endpoint and how to perform CRUD operations
    on it in a declarative fashion.  Applying a list of configs will add and/or update
    the list to artifactory. Deleting a list of configs will delete them from artifactory.
    Pruning a list will add and/or update the list to artifactory and remove any configs in
    artifactory that are not in the list.
    '''

    # Dotted field paths that Artifactory never returns in clear text
    _ignoredFields = ()
    _caseInsensitiveKeys = False

    def __init__(self, artifactory_base_url, auth_type, auth_string, ignore_ca_error=False, inCheckMode=False, timeout=30):
        super().__init__(artifactory_base_url, auth_type, auth_string,
                         ignore_ca_error=ignore_ca_error, inCheckMode=inCheckMode, timeout=timeout)
        self.keyList = self._getRecordKeyList()
        self.changes = dict(added=[], updated=[], deleted=[])

    def applyConfigs(self, configs):
        '''This method applies all of the config records in the argument to Artifactory.  It updates or creates new.  Honors check mode.
        :args configs: list of configs
        :return: True if something has changed.  False if no changes occurred.
        '''
        onlyInConfigList, inBoth, onlyInArtifactory = self._sortConfigs(self._toRecords(configs), self._getConfigRecordListFromArtifactory())
        isChanged = self._addAll(onlyInConfigList)
        if self._updateAll(inBoth):
            isChanged = True
        return isChanged

    def deleteConfigs(self, configs):
        '''This method deletes all of the config records in the argument from Artifactory.  It deletes or skips records.  Honors check mode.
        :return: True if something has changed.  False if no changes occurred.
        '''
        onlyInConfigList, inBoth, onlyInArtifactory = self._sortConfigs(self._toRecords(configs), self._getConfigRecordListFromArtifactory())
        return self._deleteAll([current for desired, current in inBoth])

    def pruneConfigs(self, configs):
        '''This method applies the config records in the argument to Artifactory and removes any records in Artifactory that are not
        in the list.  Honors check mode.
        :return: True if something has changed. False if no changes occurred.
        '''
        onlyInConfigList, inBoth, onlyInArtifactory = self._sortConfigs(self._toRecords(configs), self._getConfigRecordListFromArtifactory())
        isChanged = self._addAll(onlyInConfigList)
        if self._updateAll(inBoth):
            isChanged = True
        if self._deleteAll(onlyInArtifactory):
            isChanged = True
        return isChanged

    @abstractmethod
    def _getRecordKeyList(self):
        '''This method returns the list of keys in a config record that uniquely identify it.
        '''
        pass

    @abstractmethod
    def _addToArtifactory(self, configRecord):
        '''This method takes a single new config record and adds it to artifactory.  Only called outside check mode.
        '''
        pass

    @abstractmethod
    def _deleteFromArtifactory(self, configRecord):
        '''This method takes a single config record and deletes it from artifactory.  Only called outside check mode.
        '''
        pass

    @abstractmethod
    def _updateInArtifactory(self, configRecord, artifactoryRecord):
        '''This method takes a desired config record and the record currently in Artifactory
        and writes the desired one.  Only called outside check mode, and only when the two differ.
        '''
        pass

    @abstractmethod
    def _getConfigRecordListFromArtifactory(self):
        '''This method gets a list of configurations from Artifactory and returns a list of
        ConfigRecord objects
        :return: List of configs from Artifactory endpoint
        :rtype: List of ConfigRecords
        '''
        pass

    def _newRecord(self, record):
        return ConfigRecord(record, self.keyList, self._ignoredFields, self._caseInsensitiveKeys)

    def _toRecords(self, configs):
        records = list()
        for config in configs or []:
            record = self._newRecord(config)
            if record in records:
                raise ValueError('Configurations must have unique %s values: %s' % (', '.join(self.keyList), record.keyString()))
            records.append(record)
        return records

    def _addAll(self, records):
        for record in records:
            if not self.inCheckMode:
                self._addToArtifactory(record)
            self.changes['added'].append(record.keyString())
        return bool(records)

    def _updateAll(self, pairs):
        '''Updates each (desired, current) pair whose merged record differs from what Artifactory holds.'''
        isChanged = False
        for desired, current in pairs:
            future = current.merged(desired)
            if future.deepEquals(current):
                continue
            if not self.inCheckMode:
                self._updateInArtifactory(desired, current)
            self.changes['updated'].append(desired.keyString())
            isChanged = True
        return isChanged

    def _deleteAll(self, records):
        for record in records:
            if not self.inCheckMode:
                self._deleteFromArtifactory(record)
            self.changes['deleted'].append(record.keyString())
        return bool(records)

    def _sortConfigs(self, configRecordListA, configRecordListB):
        '''This helper function performs some set algebra to determine what is just in
        configRecordListA, what is just in configRecordListB, and what is in both.
        Records in both are returned as (recordFromA, recordFromB) pairs.'''
        inBoth = list()
        onlyInListA = list()
        onlyInListB = list(configRecordListB)
        for item in configRecordListA:
            if item in configRecordListB:
                match = configRecordListB[configRecordListB.index(item)]
                inBoth.append((item.copy(), match.copy()))
                onlyInListB.remove(item)
            else:
                onlyInListA.append(item.copy())
        return (onlyInListA, inBoth, onlyInListB)


class ArtifactorySingletonApi(ArtifactoryClient, ABC):
    '''This abstract class defines an Artifactory configuration block that exists at most once
    (mail server, trash can, base URL...).  Applying a config writes it when it differs from
    what Artifactory holds.  Deleting removes the block or resets it, depending on the endpoint.
    '''

    _ignoredFields = ()

    def applyConfig(self, config):
        '''Writes config to Artifactory when it is missing or differs.  Honors check mode.
        :return: True if something has changed.
        '''
        currentConfig = self._getConfigFromArtifactory()
        desired = ConfigRecord(self._completeConfig(config, currentConfig), [], self._ignoredFields)
        if currentConfig is not None:
            current = ConfigRecord(currentConfig, [], self._ignoredFields)
            if current.merged(desired).deepEquals(current):
                return False
        if not self.inCheckMode:
            self._setInArtifactory(desired.record)
        return True

    def deleteConfig(self):
        '''Removes the block from Artifactory.  Honors check mode.
        :return: True if something has changed.
        '''
        current = self._getConfigFromArtifactory()
        if current is None:
            return False
        if self._isDefault(current):
            return False
        if not self.inCheckMode:
            self._deleteFromArtifactory(current)
        return True

    def _completeConfig(self, config, currentConfig):
        '''Writes merge into what is stored.  Override to null out nested entries config no longer has.'''
        return config

    def _isDefault(self, config):
        '''Blocks that are reset instead of removed report True once they hold their defaults.'''
        return False

    @abstractmethod
    def _getConfigFromArtifactory(self):
        '''Returns the current block as a dictionary, or None when it is not configured.'''
        pass

    @abstractmethod
    def _setInArtifactory(self, config):
        pass

    @abstractmethod
    def _deleteFromArtifactory(self, config):
        pass


class ConfigRecord():
    '''This record allows records to be compared by their key list (unique identifier) for sorting purposes.
    Two records can be compared by all fields if deepEquals is used.
    '''

    def __init__(self, record, keylist, ignoredFields=(), caseInsensitiveKeys=False):
        '''Creates a record based on a json string and a key list
        :param record: JSON string or a dictionary defining the record
        :param keylist: list of fields (as strings) that when used together can uniquely identify a record
        :param ignoredFields: dotted field paths left out of deepEquals
        :param caseInsensitiveKeys: compare key fields ignoring case (repository keys)
        '''
        # Parse as json if record is passed as a single string.  Otherwise, assume it is a dictionary.
        if isinstance(record, str):
            self.record = json.loads(record)
        else:
            self.record = record
        self._keylist = list(keylist)
        self._ignoredFields = tuple(ignoredFields)
        self._caseInsensitiveKeys = caseInsensitiveKeys

    def __eq__(self, other):
        if not isinstance(other, ConfigRecord):
            return False
        for key in self._keylist:
            mine, theirs = self.record.get(key), other.record.get(key)
            if self._caseInsensitiveKeys:
                mine, theirs = _lower(mine), _lower(theirs)
            if mine != theirs:
                return False
        return True

    def __ne__(self, other):
        return not self.__eq__(other)

    def __getitem__(self, key):
        return self.record[key]

    def __str__(self):
        return str(self.record)

    def __repr__(self):
        return 'ConfigRecord(%r)' % (self.record,)

    def keyString(self):
        return '/'.join(str(self.record.get(key)) for key in self._keylist)

    def copy(self):
        return ConfigRecord(copy.deepcopy(self.record), self._keylist, self._ignoredFields, self._caseInsensitiveKeys)

    def deepEquals(self, other):
        if not isinstance(other, ConfigRecord):
            return False
        return _strip(self.record, self._ignoredFields) == _strip(other.record, self._ignoredFields)

    def merged(self, other):
        '''Returns a copy of this record updated with the fields of other.  Nested dictionaries are merged.'''
        result = self.copy()
        otherRecord = other.record if isinstance(other, ConfigRecord) else other
        _deepUpdate(result.record, otherRecord)
        return result

    def update(self, other):
        _deepUpdate(self.record, other.record if isinstance(other, ConfigRecord) else other)


def _lower(value):
    if isinstance(value, str):
        return value.lower()
    return value


def _deepUpdate(target, source):
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deepUpdate(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


def _strip(record, ignoredFields):
    stripped = copy.deepcopy(record)
    for field in ignoredFields:
        _dropPath(stripped, field.split('.'))
    return stripped


def _dropPath(node, parts):
    '''Removes the dotted path from node.  A "*" part matches every key of a map.'''
    if not isinstance(node, dict):
        return
    head, rest = parts[0], parts[1:]
    if not rest:
        if head == '*':
            node.clear()
        else:
            node.pop(head, None)
        return
    children = list(node.values()) if head == '*' else [node.get(head)]
    for child in children:
        _dropPath(child, rest)
