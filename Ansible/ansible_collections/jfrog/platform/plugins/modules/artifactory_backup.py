#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_backup

short_description: Manages the periodic system backups of Artifactory

version_added: "1.0.0"

description:
    - Adds, updates or removes backup configurations in the system configuration of Artifactory
      (C(backups) block, REST endpoint artifactory/api/system/configuration).
    - The backup process creates a time-stamped directory in the target backup directory.
    - Only supported in self-hosted environments.

options:
    backups:
        description:
          - List of backup configurations.  Only C(key) is needed when I(state=Absent).
        type: list
        elements: dict
        required: True
        suboptions:
            key:
                description: Unique backup name.
                type: str
                required: True
            enabled:
                description: Flag to enable or disable the backup config.
                type: bool
                default: True
            cron_exp:
                description: Quartz cron expression to control the backup frequency.  Required unless I(state=Absent).
                type: str
            retention_period_hours:
                description:
                  - The number of hours to keep a backup before Artifactory will clean it up to free up disk space.
                  - Applicable only to non-incremental backups.
                type: int
                default: 168
            excluded_repositories:
                description: List of repositories excluded from the backup.
                type: list
                elements: str
                default: []
            create_archive:
                description: If set, backups will be created within a Zip archive (Slow and CPU intensive).
                type: bool
                default: False
            exclude_new_repositories:
                description: When set, new repositories will not be automatically added to the backup.
                type: bool
                default: False
            send_mail_on_error:
                description: If set, all Artifactory administrators will be notified by email if any problem is encountered during backup.
                type: bool
                default: True
            verify_disk_space:
                description:
                  - If set, Artifactory will verify that the backup target location has enough disk space available to hold the backed up data.
                  - Applicable only to non-incremental backups.
                type: bool
                default: False
            export_mission_control:
                description: When set, mission control will not be automatically added to the backup.
                type: bool
                default: False

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Nightly backup that skips the docker caches
  jfrog.platform.artifactory_backup:
    backups:
      - key: nightly
        cron_exp: "0 0 2 ? * MON-SAT *"
        retention_period_hours: 72
        excluded_repositories:
          - docker-remote-cache
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"

- name: Remove the nightly backup
  jfrog.platform.artifactory_backup:
    backups:
      - key: nightly
    state: Absent
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Backups modified'
added:
    description: Keys of the backups that were added
    type: list
    returned: always
updated:
    description: Keys of the backups that were updated
    type: list
    returned: always
deleted:
    description: Keys of the backups that were deleted
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
    isQuartzCron,
    xmlBool,
    xmlInt,
    xmlList,
    xmlText,
)


def run_module():
    # define available arguments/parameters a user can pass to the module
    module_args = commonArgumentSpec()
    module_args.update(
        backups=dict(type='list', elements='dict', required=True, options=dict(
            key=dict(type='str', required=True, no_log=False),
            enabled=dict(type='bool', default=True),
            cron_exp=dict(type='str'),
            retention_period_hours=dict(type='int', default=168),
            excluded_repositories=dict(type='list', elements='str', default=[]),
            create_archive=dict(type='bool', default=False),
            exclude_new_repositories=dict(type='bool', default=False),
            send_mail_on_error=dict(type='bool', default=True),
            verify_disk_space=dict(type='bool', default=False),
            export_mission_control=dict(type='bool', default=False),
        )),
        state=dict(type='str', default='Present', choices=KEYED_STATES),
    )

    # changed is if this module effectively modified the target
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
        checkBackups(module.params['backups'], module.params['state'])
        api = ArtifactoryBackup(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(backup) for backup in module.params['backups']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "Backups modified"
    else:
        result['message'] = "Backups unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkBackups(backups, state):
    for backup in backups:
        if not backup['key']:
            raise ValueError('"key" must not be empty')
        if str(state).lower() == 'absent':
            continue
        if not isQuartzCron(backup.get('cron_exp')):
            raise ValueError('Backup %s needs "cron_exp" set to a valid Quartz cron expression' % backup['key'])
        if backup['retention_period_hours'] is not None and backup['retention_period_hours'] < 0:
            raise ValueError('Backup %s: "retention_period_hours" must be at least 0' % backup['key'])


def toApiModel(backup):
    '''Converts the module options of one backup into the Artifactory backup block.'''
    return {
        'key': backup['key'],
        'enabled': backup['enabled'],
        'cronExp': backup['cron_exp'] or '',
        'retentionPeriodHours': backup['retention_period_hours'],
        'excludedRepositories': sorted(backup['excluded_repositories'] or []),
        'createArchive': backup['create_archive'],
        'excludeNewRepositories': backup['exclude_new_repositories'],
        'sendMailOnError': backup['send_mail_on_error'],
        'precalculate': backup['verify_disk_space'],
        'exportMissionControl': backup['export_mission_control'],
    }


class ArtifactoryBackup(ArtifactoryConfigurationApi):
    _patchPath = ('backups',)
    _xmlPath = 'backups/backup'
    _keyField = 'key'

    def _recordFromXml(self, elem):
        return {
            'key': xmlText(elem, 'key'),
            'enabled': xmlBool(elem, 'enabled'),
            'cronExp': xmlText(elem, 'cronExp'),
            'retentionPeriodHours': xmlInt(elem, 'retentionPeriodHours'),
            'excludedRepositories': sorted(xmlList(elem, 'excludedRepositories/repositoryRef')),
            'createArchive': xmlBool(elem, 'createArchive'),
            'excludeNewRepositories': xmlBool(elem, 'excludeNewRepositories'),
            'sendMailOnError': xmlBool(elem, 'sendMailOnError'),
            'precalculate': xmlBool(elem, 'precalculate'),
            'exportMissionControl': xmlBool(elem, 'exportMissionControl'),
        }

    def _recordToPatchBody(self, record):
        body = dict(record)
        if not body['excludedRepositories']:
            del body['excludedRepositories']
        return body

    def _recordToUpdateBody(self, record, artifactoryRecord):
        body = self._recordToPatchBody(record)
        if not record['excludedRepositories'] and artifactoryRecord.get('excludedRepositories'):
            body['excludedRepositories'] = None
        return body


if __name__ == '__main__':
    main()
