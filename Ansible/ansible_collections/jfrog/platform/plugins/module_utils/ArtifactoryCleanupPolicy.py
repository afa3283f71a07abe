# Public Domain: Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

'''
Cleanup (retention) policies live behind their own REST resources instead of the
system configuration descriptor:

    GET    <policies>                 list the policies
    GET    <policies>/<key>           read one policy
    POST   <policies>/<key>           create
    PUT    <policies>/<key>           update (cannot change "enabled")
    DELETE <policies>/<key>           remove
    POST   <policies>/<key>/enablement {"enabled": bool}
'''

import logging
import re
from abc import abstractmethod
from urllib.parse import quote

from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi import (
    ArtifactoryApi,
    ArtifactoryApiError,
)
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryConfiguration import isQuartzCron

logger = logging.getLogger(__name__)

_POLICY_KEY = re.compile(r'^[a-zA-Z0-9_\-]{3,}$')


def checkPolicyKey(key):
    '''Policy keys need at least three characters: letters, numbers, underscore and hyphen.'''
    if not key or not _POLICY_KEY.match(key):
        raise ValueError('Policy key "%s" must be at least 3 characters of letters, numbers, underscore or hyphen' % (key,))


def checkPolicyCron(key, cronExpression):
    if cronExpression and not isQuartzCron(cronExpression):
        raise ValueError('Policy %s: "%s" is not a valid Quartz cron expression' % (key, cronExpression))


def checkPackageSearchCriteria(key, criteria):
    '''Checks shared by cleanup and archive policies that select packages.
    Month thresholds differ between the two and are left to the caller.'''
    if not criteria:
        raise ValueError('Policy %s needs "search_criteria"' % key)
    for field in ('package_types', 'repos'):
        if not criteria.get(field):
            raise ValueError('Policy %s: "search_criteria.%s" must not be empty' % (key, field))
    if len(criteria.get('included_packages') or []) != 1:
        raise ValueError('Policy %s: "search_criteria.included_packages" takes exactly one package name or pattern' % key)
    keepLast = criteria.get('keep_last_n_versions')
    if keepLast is not None:
        if criteria.get('created_before_in_months') is not None or criteria.get('last_downloaded_before_in_months') is not None:
            raise ValueError('Policy %s: "keep_last_n_versions" cannot be combined with "created_before_in_months" '
                             'or "last_downloaded_before_in_months"' % key)
        if keepLast < 1:
            raise ValueError('Policy %s: "keep_last_n_versions" must be at least 1' % key)


def sortedOrNone(values):
    # Artifactory echoes unset optional lists as []
    if not values:
        return None
    return sorted(values)


def packagePolicyToApi(policy):
    '''Converts the module options of a policy selecting packages into the Artifactory policy model.'''
    criteria = policy.get('search_criteria') or {}
    return {
        'key': policy['key'],
        'description': policy['description'] or '',
        'cronExp': policy['cron_expression'] or '',
        'durationInMinutes': policy['duration_in_minutes'] or 0,
        'enabled': policy['enabled'],
        'skipTrashcan': policy['skip_trashcan'],
        'projectKey': policy['project_key'] or '',
        'searchCriteria': {
            'packageTypes': sorted(criteria.get('package_types') or []),
            'repos': sorted(criteria.get('repos') or []),
            'excludedRepos': sortedOrNone(criteria.get('excluded_repos')),
            'includedPackages': sorted(criteria.get('included_packages') or []),
            'excludedPackages': sortedOrNone(criteria.get('excluded_packages')),
            'includeAllProjects': criteria.get('include_all_projects'),
            'includedProjects': sortedOrNone(criteria.get('included_projects')),
            'createdBeforeInMonths': criteria.get('created_before_in_months'),
            'lastDownloadedBeforeInMonths': criteria.get('last_downloaded_before_in_months'),
            # the API spells it this way
            'keepLastNVerions': criteria.get('keep_last_n_versions'),
        },
    }


def packagePolicyFromApi(policy):
    criteria = policy.get('searchCriteria') or {}
    return {
        'key': policy.get('key', ''),
        'description': policy.get('description') or '',
        'cronExp': policy.get('cronExp') or '',
        'durationInMinutes': policy.get('durationInMinutes') or 0,
        'enabled': bool(policy.get('enabled', False)),
        'skipTrashcan': bool(policy.get('skipTrashcan', False)),
        'projectKey': policy.get('projectKey') or '',
        'searchCriteria': {
            'packageTypes': sorted(criteria.get('packageTypes') or []),
            'repos': sorted(criteria.get('repos') or []),
            'excludedRepos': sortedOrNone(criteria.get('excludedRepos')),
            'includedPackages': sorted(criteria.get('includedPackages') or []),
            'excludedPackages': sortedOrNone(criteria.get('excludedPackages')),
            'includeAllProjects': criteria.get('includeAllProjects'),
            'includedProjects': sortedOrNone(criteria.get('includedProjects')),
            'createdBeforeInMonths': criteria.get('createdBeforeInMonths'),
            'lastDownloadedBeforeInMonths': criteria.get('lastDownloadedBeforeInMonths'),
            'keepLastNVerions': criteria.get('keepLastNVerions'),
        },
    }


def dropUnset(document):
    '''Removes None values so optional fields are left out of the request body.'''
    if isinstance(document, dict):
        return dict((key, dropUnset(value)) for key, value in document.items() if value is not None)
    if isinstance(document, list):
        return [dropUnset(value) for value in document]
    return document


class ArtifactoryCleanupPolicyApi(ArtifactoryApi):
    '''Keyed cleanup policies.  Subclasses set _policiesEndpoint and implement _fromApi, which
    turns a policy read from Artifactory into the same shape the module builds.'''

    _policiesEndpoint = ''

    def _getRecordKeyList(self):
        return ['key']

    def _policyUrl(self, key):
        return '%s/%s' % (self._policiesEndpoint, quote(key, safe=''))

    def getPolicy(self, key):
        '''Reads one policy.
        :return: the policy as returned by Artifactory, or None when it does not exist.
        '''
        try:
            return self._sendRequest(self._policyUrl(key))
        except ArtifactoryApiError as e:
            if e.isNotFound:
                return None
            raise

    def _getConfigRecordListFromArtifactory(self):
        listing = self._sendRequest(self._policiesEndpoint) or []
        if isinstance(listing, dict):
            listing = listing.get('policies') or []
        records = list()
        for entry in listing:
            key = entry.get('key') if isinstance(entry, dict) else entry
            if not key:
                continue
            policy = self.getPolicy(key)
            # removed between listing and reading: treated as missing and re-created
            if policy is None:
                logger.debug('policy %s disappeared while reading', key)
                continue
            records.append(self._newRecord(self._fromApi(policy)))
        return records

    @abstractmethod
    def _fromApi(self, policy):
        '''Turns a policy read from Artifactory into the shape the module builds.
        '''
        pass

    def _addToArtifactory(self, configRecord):
        key = configRecord['key']
        self._sendRequest(self._policyUrl(key), 'POST', dropUnset(configRecord.record))
        if configRecord.record.get('enabled'):
            self._setEnablement(key, True)

    def _updateInArtifactory(self, configRecord, artifactoryRecord):
        key = configRecord['key']
        body = dropUnset(configRecord.record)
        # the update API keeps the stored value, enablement is toggled separately
        body['enabled'] = artifactoryRecord.record.get('enabled', False)
        self._sendRequest(self._policyUrl(key), 'PUT', body)
        if bool(configRecord.record.get('enabled')) != bool(artifactoryRecord.record.get('enabled')):
            self._setEnablement(key, bool(configRecord.record.get('enabled')))

    def _deleteFromArtifactory(self, configRecord):
        self._sendRequest(self._policyUrl(configRecord['key']), 'DELETE')

    def _setEnablement(self, key, enabled):
        self._sendRequest(self._policyUrl(key) + '/enablement', 'POST', {'enabled': enabled})
