# Public Domain: Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

'''
Access to the global system configuration of Artifactory.

The descriptor is read as XML from GET artifactory/api/system/configuration and
written by PATCHing a partial YAML document to the same endpoint.  The two shapes
differ: GET lists a keyed block as "backups -> backup -> [blocks]" while PATCH
addresses it as "backups -> <key> -> block".  Setting a key to null removes it.
See https://www.jfrog.com/confluence/display/JFROG/Artifactory+YAML+Configuration
'''

import logging
import re
import xml.etree.ElementTree as ET
from abc import abstractmethod

import yaml

from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryApi import (
    ArtifactoryApi,
    ArtifactorySingletonApi,
)

logger = logging.getLogger(__name__)

CONFIGURATION_ENDPOINT = 'artifactory/api/system/configuration'

_QUARTZ_FIELD = re.compile(r'^[0-9A-Za-z*?/,\-#LW]+$')


def buildConfigurationPatch(path, key, body):
    '''Builds the nested map the PATCH API expects for one keyed block.

    buildConfigurationPatch(['security', 'ldapSettings'], 'corp', {...}) returns
    {'security': {'ldapSettings': {'corp': {...}}}}.  A body of None deletes the block.
    '''
    document = {key: body}
    for section in reversed(path):
        document = {section: document}
    return document


def dumpConfigurationPatch(document):
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)


def isQuartzCron(expression):
    '''Loose check of a Quartz cron expression: 6 or 7 whitespace separated fields.'''
    if not isinstance(expression, str):
        return False
    fields = expression.split()
    if len(fields) not in (6, 7):
        return False
    return all(_QUARTZ_FIELD.match(field) for field in fields)


def parseConfigurationXml(text):
    '''Parses the XML descriptor and drops namespaces so elements can be found by plain tag names.'''
    root = ET.fromstring(text.encode('utf-8') if isinstance(text, str) else text)
    for elem in root.iter():
        if isinstance(elem.tag, str) and '}' in elem.tag:
            elem.tag = elem.tag.split('}', 1)[1]
    return root


def xmlText(elem, tag, default=''):
    child = elem.find(tag)
    if child is None or child.text is None:
        return default
    return child.text.strip()


def xmlBool(elem, tag, default=False):
    child = elem.find(tag)
    if child is None or child.text is None:
        return default
    return child.text.strip().lower() == 'true'


def xmlInt(elem, tag, default=0):
    child = elem.find(tag)
    if child is None or child.text is None or not child.text.strip():
        return default
    return int(child.text.strip())


def xmlList(elem, path):
    return [child.text.strip() for child in elem.findall(path) if child.text is not None]


def splitCommaList(value):
    '''Artifactory stores some sets as a comma joined string.'''
    if not value:
        return []
    return sorted(item.strip() for item in value.split(',') if item.strip())


def joinCommaList(values):
    return ','.join(sorted(values or []))


class SystemConfigurationMixin():
    '''Reading and patching the system configuration descriptor.'''

    def getConfigurationDocument(self):
        text = self._sendRequest(CONFIGURATION_ENDPOINT, 'GET')
        return parseConfigurationXml(text or '<config/>')

    def sendConfigurationPatch(self, document):
        content = dumpConfigurationPatch(document)
        logger.debug('PATCH %s with sections %s', CONFIGURATION_ENDPOINT, list(document))
        return self._sendRequest(CONFIGURATION_ENDPOINT, 'PATCH', content,
                                 contentType='application/yaml', retryOnMergeError=True)


class ArtifactoryConfigurationApi(SystemConfigurationMixin, ArtifactoryApi):
    '''Keyed blocks of the system configuration (backups, proxies, property sets...).

    Subclasses set _patchPath (sections above the key in the PATCH document), _xmlPath
    (path of the repeated element below the <config> root), _keyField and implement
    _recordFromXml and _recordToPatchBody.

    Blocks nested below "security" cannot have a single key nulled out.  Those set
    _deleteByRestore: the whole block is cleared and the remaining records are written back.
    '''

    _patchPath = ()
    _xmlPath = ''
    _keyField = 'key'
    _deleteByRestore = False

    def _getRecordKeyList(self):
        return [self._keyField]

    def _getConfigRecordListFromArtifactory(self):
        root = self.getConfigurationDocument()
        self._artifactoryRecords = [self._newRecord(self._recordFromXml(elem)) for elem in root.findall(self._xmlPath)]
        return list(self._artifactoryRecords)

    @abstractmethod
    def _recordFromXml(self, elem):
        '''Turns one repeated element of the descriptor into a record shaped like the module builds it.
        '''
        pass

    def _recordToPatchBody(self, record):
        '''Most blocks are written as they are read.  Override to drop or reshape fields.'''
        return dict(record)

    def _recordToUpdateBody(self, record, artifactoryRecord):
        '''PATCH merges into what is stored.  Override to null out nested entries the record no longer has.'''
        return self._recordToPatchBody(record)

    def _addToArtifactory(self, configRecord):
        self._patchRecord(configRecord, self._recordToPatchBody(configRecord.record))
        self._artifactoryRecords.append(configRecord)

    def _updateInArtifactory(self, configRecord, artifactoryRecord):
        self._patchRecord(configRecord, self._recordToUpdateBody(configRecord.record, artifactoryRecord.record))
        self._artifactoryRecords = [configRecord if record == configRecord else record for record in self._artifactoryRecords]

    def _deleteFromArtifactory(self, configRecord):
        self._artifactoryRecords = [record for record in self._artifactoryRecords if record != configRecord]
        if self._deleteByRestore:
            self._restoreBlock()
            return
        key = configRecord[self._keyField]
        self.sendConfigurationPatch(buildConfigurationPatch(list(self._patchPath), key, None))

    def _patchRecord(self, configRecord, body):
        key = configRecord[self._keyField]
        self.sendConfigurationPatch(buildConfigurationPatch(list(self._patchPath), key, body))

    def _restoreBlock(self):
        path = list(self._patchPath)
        self.sendConfigurationPatch(buildConfigurationPatch(path[:-1], path[-1], None))
        if self._artifactoryRecords:
            remaining = dict((record[self._keyField], self._recordToPatchBody(record.record)) for record in self._artifactoryRecords)
            self.sendConfigurationPatch(buildConfigurationPatch(path[:-1], path[-1], remaining))


class ArtifactoryConfigurationSingletonApi(SystemConfigurationMixin, ArtifactorySingletonApi):
    '''Unkeyed blocks of the system configuration (mailServer, trashcanConfig).'''

    _patchKey = ''
    _xmlPath = ''

    def _getConfigFromArtifactory(self):
        elem = self.getConfigurationDocument().find(self._xmlPath)
        if elem is None:
            return None
        return self._recordFromXml(elem)

    @abstractmethod
    def _recordFromXml(self, elem):
        '''Turns the block element into a dictionary shaped like the module builds it.
        '''
        pass

    def _setInArtifactory(self, config):
        self.sendConfigurationPatch({self._patchKey: config})

    def _deleteFromArtifactory(self, config):
        self.sendConfigurationPatch({self._patchKey: None})
