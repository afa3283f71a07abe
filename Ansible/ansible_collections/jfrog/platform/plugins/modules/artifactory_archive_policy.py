#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_archive_policy

short_description: Manages package archive policies

version_added: "1.0.0"

description:
    - Adds, updates or removes archive policies (REST endpoint artifactory/api/archive/v2/packages/policies).
    - Archive policies move packages matching the search criteria to archive storage on a schedule or when run manually.
      Requires Artifactory 7.102.0 or later.

options:
    policies:
        description:
          - List of archive policies.  Only C(key) is needed when I(state=Absent).
        type: list
        elements: dict
        required: True
        suboptions:
            key:
                description:
                  - Policy key.  At least three characters of letters, numbers, underscore and hyphen.
                type: str
                required: True
            description:
                description: Free text description of the policy.
                type: str
                default: ''
            cron_expression:
                description:
                  - The Quartz cron expression that sets the schedule of policy execution.
                  - When empty the policy only runs when triggered manually.
                type: str
                default: ''
            duration_in_minutes:
                description: Maximum duration of one execution.  The policy may stop before completion.
                type: int
                default: 0
            enabled:
                description: Enables or disables the policy.  A disabled policy can still be run manually.
                type: bool
                default: True
            skip_trashcan:
                description: When enabled, packages are removed permanently instead of moved to the trash can.
                type: bool
                default: False
            project_key:
                description: Only used for project-level archive policies.
                type: str
                default: ''
            search_criteria:
                description: Selects the packages the policy archives.  Required unless I(state=Absent).
                type: dict
                suboptions:
                    package_types:
                        description: Types of packages to be archived.
                        type: list
                        elements: str
                        choices: [cargo, cocoapods, conan, debian, docker, gems, generic, go, gradle, helm, helmoci,
                                  huggingfaceml, maven, npm, nuget, oci, pypi, terraform, yum]
                    repos:
                        description: Repository names or patterns.  Use C(**) for all repositories.
                        type: list
                        elements: str
                    excluded_repos:
                        description: Repository names or patterns excluded from the policy.
                        type: list
                        elements: str
                    included_packages:
                        description: A single package name or pattern.  Use C(**) for all packages.
                        type: list
                        elements: str
                    excluded_packages:
                        description: Explicit package names excluded from the policy.
                        type: list
                        elements: str
                    include_all_projects:
                        description: Apply the policy to all projects.
                        type: bool
                    included_projects:
                        description: Project keys the policy applies to.
                        type: list
                        elements: str
                    created_before_in_months:
                        description:
                          - Archive packages created before this many months.
                          - Defaults to 24 unless I(keep_last_n_versions) is set.
                        type: int
                    last_downloaded_before_in_months:
                        description:
                          - Archive packages last downloaded before this many months.
                          - Defaults to 24 unless I(keep_last_n_versions) is set.
                        type: int
                    keep_last_n_versions:
                        description:
                          - Keep this many latest versions and archive all prior ones.
                          - Cannot be combined with I(created_before_in_months) or I(last_downloaded_before_in_months).
                        type: int

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Archive maven releases nobody downloaded for a year
  jfrog.platform.artifactory_archive_policy:
    policies:
      - key: maven-cold
        cron_expression: "0 0 3 ? * SUN"
        search_criteria:
          package_types:
            - maven
          repos:
            - libs-release-local
          included_packages:
            - "**"
          created_before_in_months: 12
          last_downloaded_before_in_months: 12
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Archive policies modified'
added:
    description: Keys of the policies that were added
    type: list
    returned: always
updated:
    description: Keys of the policies that were updated
    type: list
    returned: always
deleted:
    description: Keys of the policies that were deleted
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
from ansible_collections.jfrog.platform.plugins.module_utils.ArtifactoryCleanupPolicy import (
    ArtifactoryCleanupPolicyApi,
    checkPackageSearchCriteria,
    checkPolicyCron,
    checkPolicyKey,
    packagePolicyFromApi,
    packagePolicyToApi,
)

PACKAGE_TYPES = ['cargo', 'cocoapods', 'conan', 'debian', 'docker', 'gems', 'generic', 'go', 'gradle', 'helm', 'helmoci',
                 'huggingfaceml', 'maven', 'npm', 'nuget', 'oci', 'pypi', 'terraform', 'yum']
DEFAULT_MONTHS = 24
AGE_FIELDS = ('created_before_in_months', 'last_downloaded_before_in_months')


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        policies=dict(type='list', elements='dict', required=True, options=dict(
            key=dict(type='str', required=True, no_log=False),
            description=dict(type='str', default=''),
            cron_expression=dict(type='str', default=''),
            duration_in_minutes=dict(type='int', default=0),
            enabled=dict(type='bool', default=True),
            skip_trashcan=dict(type='bool', default=False),
            project_key=dict(type='str', default='', no_log=False),
            search_criteria=dict(type='dict', options=dict(
                package_types=dict(type='list', elements='str', choices=PACKAGE_TYPES),
                repos=dict(type='list', elements='str'),
                excluded_repos=dict(type='list', elements='str'),
                included_packages=dict(type='list', elements='str'),
                excluded_packages=dict(type='list', elements='str'),
                include_all_projects=dict(type='bool'),
                included_projects=dict(type='list', elements='str'),
                created_before_in_months=dict(type='int'),
                last_downloaded_before_in_months=dict(type='int'),
                keep_last_n_versions=dict(type='int', no_log=False),
            )),
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
        checkPolicies(module.params['policies'], module.params['state'])
        api = ArtifactoryArchivePolicy(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(policy) for policy in module.params['policies']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "Archive policies modified"
    else:
        result['message'] = "Archive policies unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkPolicies(policies, state):
    for policy in policies:
        checkPolicyKey(policy['key'])
        if str(state).lower() == 'absent':
            continue
        checkPolicyCron(policy['key'], policy['cron_expression'])
        if policy['duration_in_minutes'] is not None and policy['duration_in_minutes'] < 0:
            raise ValueError('Policy %s: "duration_in_minutes" must not be negative' % policy['key'])
        criteria = policy.get('search_criteria')
        checkPackageSearchCriteria(policy['key'], criteria)
        if criteria.get('keep_last_n_versions') is not None:
            continue
        ages = [_months(criteria, field) for field in AGE_FIELDS]
        if any(age < 0 for age in ages):
            raise ValueError('Policy %s: months must not be negative' % policy['key'])
        if all(age == 0 for age in ages):
            raise ValueError('Policy %s: "created_before_in_months" and "last_downloaded_before_in_months" '
                             'cannot both be zero' % policy['key'])


def _months(criteria, field):
    value = criteria.get(field)
    return DEFAULT_MONTHS if value is None else value


def toApiModel(policy):
    criteria = dict(policy.get('search_criteria') or {})
    if criteria and criteria.get('keep_last_n_versions') is None:
        for field in AGE_FIELDS:
            criteria[field] = _months(criteria, field)
    return packagePolicyToApi(dict(policy, search_criteria=criteria))


class ArtifactoryArchivePolicy(ArtifactoryCleanupPolicyApi):
    _policiesEndpoint = 'artifactory/api/archive/v2/packages/policies'

    def _fromApi(self, policy):
        return packagePolicyFromApi(policy)


if __name__ == '__main__':
    main()
