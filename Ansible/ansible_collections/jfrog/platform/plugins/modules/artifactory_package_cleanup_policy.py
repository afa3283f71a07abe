#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_package_cleanup_policy

short_description: Manages package cleanup policies

version_added: "1.0.0"

description:
    - Adds, updates or removes package cleanup policies (REST endpoint artifactory/api/cleanup/packages/policies).
    - Cleanup policies remove packages matching the search criteria on a schedule or when run manually.
      Requires Artifactory 7.90.1 or later.

options:
    policies:
        description:
          - List of package cleanup policies.  Only C(key) is needed when I(state=Absent).
        type: list
        elements: dict
        required: True
        suboptions:
            key:
                description:
                  - Policy key.  It has to be unique and should not be shared with other configuration entities.
                  - At least three characters of letters, numbers, underscore and hyphen.
                type: str
                required: True
            description:
                description: Free text description of the policy.
                type: str
                default: ''
            cron_expression:
                description:
                  - The Quartz cron expression that sets the schedule of policy execution, for example C(0 0 2 * * ?).
                  - The minimum recurrent time for policy execution is 6 hours.
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
                description: When enabled, deleted packages are permanently removed instead of moved to the trash can.
                type: bool
                default: False
            project_key:
                description: Only used for project-level cleanup policies.
                type: str
                default: ''
            search_criteria:
                description: Selects the packages the policy removes.  Required unless I(state=Absent).
                type: dict
                suboptions:
                    package_types:
                        description: Types of packages to be removed.
                        type: list
                        elements: str
                        choices: [conan, docker, generic, gradle, maven, npm, nuget, rpm]
                    repos:
                        description: Repository names or patterns.  Use C(**) for all repositories.
                        type: list
                        elements: str
                    excluded_repos:
                        description: Explicit repository names excluded from the policy.
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
                        description: Remove packages created before this many months.
                        type: int
                    last_downloaded_before_in_months:
                        description: Remove packages last downloaded before this many months.
                        type: int
                    keep_last_n_versions:
                        description:
                          - Keep this many latest versions and remove all prior ones.
                          - Cannot be combined with I(created_before_in_months) or I(last_downloaded_before_in_months).
                        type: int

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Remove old docker images every night
  jfrog.platform.artifactory_package_cleanup_policy:
    policies:
      - key: docker-nightly
        description: Docker images not pulled for half a year
        cron_expression: "0 0 2 * * ?"
        duration_in_minutes: 60
        search_criteria:
          package_types:
            - docker
          repos:
            - "**"
          excluded_repos:
            - docker-release
          included_packages:
            - "**"
          last_downloaded_before_in_months: 6
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Package cleanup policies modified'
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

PACKAGE_TYPES = ['conan', 'docker', 'generic', 'gradle', 'maven', 'npm', 'nuget', 'rpm']


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
        api = ArtifactoryPackageCleanupPolicy(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(policy) for policy in module.params['policies']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "Package cleanup policies modified"
    else:
        result['message'] = "Package cleanup policies unchanged"

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
        ages = [criteria.get(field) for field in ('created_before_in_months', 'last_downloaded_before_in_months')]
        if all(age is None for age in ages):
            raise ValueError('Policy %s needs "created_before_in_months" or "last_downloaded_before_in_months"' % policy['key'])
        if any(age is not None and age < 1 for age in ages):
            raise ValueError('Policy %s: months must be at least 1' % policy['key'])


def toApiModel(policy):
    return packagePolicyToApi(policy)


class ArtifactoryPackageCleanupPolicy(ArtifactoryCleanupPolicyApi):
    _policiesEndpoint = 'artifactory/api/cleanup/packages/policies'

    def _fromApi(self, policy):
        return packagePolicyFromApi(policy)


if __name__ == '__main__':
    main()
