#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_release_bundles_cleanup_policy

short_description: Manages release bundle (v2) cleanup policies

version_added: "1.0.0"

description:
    - Adds, updates or removes release bundle cleanup policies (REST endpoint artifactory/api/cleanup/bundles/policies).

options:
    policies:
        description:
          - List of release bundle cleanup policies.  Only C(key) is needed when I(state=Absent).
        type: list
        elements: dict
        required: True
        suboptions:
            key:
                description: Policy key.  At least three characters of letters, numbers, underscore and hyphen.
                type: str
                required: True
            description:
                description: Free text description of the policy.
                type: str
                default: ''
            cron_expression:
                description:
                  - The Quartz cron expression that determines when the policy is run.
                  - When empty the policy only runs when triggered manually.
                type: str
                default: ''
            duration_in_minutes:
                description: Maximum duration of one execution.  The policy may stop before completion.
                type: int
                default: 0
            enabled:
                description: Enables or disables the policy.
                type: bool
                default: True
            item_type:
                description: Needs to be set to C(releaseBundle).
                type: str
                default: releaseBundle
            search_criteria:
                description: Selects the release bundles the policy removes.  Required unless I(state=Absent).
                type: dict
                suboptions:
                    release_bundles:
                        description: Release bundles the policy cleans up.
                        type: list
                        elements: dict
                        suboptions:
                            name:
                                description: Name of the release bundle.  Use C(**) for all bundles.
                                type: str
                                required: True
                            project_key:
                                description: Project of the release bundle.  Empty for the global level.
                                type: str
                                default: ''
                    exclude_promoted_environments:
                        description: Environments excluded from cleanup.  Use C(**) to exclude all.
                        type: list
                        elements: str
                        default: []
                    include_all_projects:
                        description: Run the policy on all projects.
                        type: bool
                    included_projects:
                        description: Projects the policy runs on.  Use C(default) for bundles outside any project.
                        type: list
                        elements: str
                    created_before_in_months:
                        description: Remove bundles created before this many months.
                        type: int
                        default: 24

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: Remove unpromoted release bundles after a year
  jfrog.platform.artifactory_release_bundles_cleanup_policy:
    policies:
      - key: bundles-yearly
        cron_expression: "0 0 3 ? * SUN"
        search_criteria:
          release_bundles:
            - name: "**"
          exclude_promoted_environments:
            - "**"
          include_all_projects: true
          created_before_in_months: 12
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Release bundle cleanup policies modified'
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
    checkPolicyCron,
    checkPolicyKey,
    sortedOrNone,
)


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        policies=dict(type='list', elements='dict', required=True, options=dict(
            key=dict(type='str', required=True, no_log=False),
            description=dict(type='str', default=''),
            cron_expression=dict(type='str', default=''),
            duration_in_minutes=dict(type='int', default=0),
            enabled=dict(type='bool', default=True),
            item_type=dict(type='str', default='releaseBundle'),
            search_criteria=dict(type='dict', options=dict(
                release_bundles=dict(type='list', elements='dict', options=dict(
                    name=dict(type='str', required=True),
                    project_key=dict(type='str', default='', no_log=False),
                )),
                exclude_promoted_environments=dict(type='list', elements='str', default=[]),
                include_all_projects=dict(type='bool'),
                included_projects=dict(type='list', elements='str'),
                created_before_in_months=dict(type='int', default=24),
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
        api = ArtifactoryReleaseBundlesCleanupPolicy(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(policy) for policy in module.params['policies']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "Release bundle cleanup policies modified"
    else:
        result['message'] = "Release bundle cleanup policies unchanged"

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
        if not criteria:
            raise ValueError('Policy %s needs "search_criteria"' % policy['key'])
        months = criteria.get('created_before_in_months')
        if months is not None and months < 1:
            raise ValueError('Policy %s: "created_before_in_months" must be at least 1' % policy['key'])


def _releaseBundles(bundles, nameField, projectField):
    if not bundles:
        return None
    return sorted(({'name': bundle[nameField], 'projectKey': bundle.get(projectField) or ''} for bundle in bundles),
                  key=lambda bundle: (bundle['name'], bundle['projectKey']))


def toApiModel(policy):
    criteria = policy.get('search_criteria') or {}
    return {
        'key': policy['key'],
        'description': policy['description'] or '',
        'cronExp': policy['cron_expression'] or '',
        'itemType': policy['item_type'] or 'releaseBundle',
        'durationInMinutes': policy['duration_in_minutes'] or 0,
        'enabled': policy['enabled'],
        'searchCriteria': {
            'releaseBundles': _releaseBundles(criteria.get('release_bundles'), 'name', 'project_key'),
            'excludePromotedEnvironments': sorted(criteria.get('exclude_promoted_environments') or []),
            'includeAllProjects': criteria.get('include_all_projects'),
            'includedProjects': sortedOrNone(criteria.get('included_projects')),
            'createdBeforeInMonths': criteria.get('created_before_in_months'),
        },
    }


class ArtifactoryReleaseBundlesCleanupPolicy(ArtifactoryCleanupPolicyApi):
    _policiesEndpoint = 'artifactory/api/cleanup/bundles/policies'

    def _fromApi(self, policy):
        criteria = policy.get('searchCriteria') or {}
        return {
            'key': policy.get('key', ''),
            'description': policy.get('description') or '',
            'cronExp': policy.get('cronExp') or '',
            'itemType': policy.get('itemType') or 'releaseBundle',
            'durationInMinutes': policy.get('durationInMinutes') or 0,
            'enabled': bool(policy.get('enabled', False)),
            'searchCriteria': {
                'releaseBundles': _releaseBundles(criteria.get('releaseBundles'), 'name', 'projectKey'),
                'excludePromotedEnvironments': sorted(criteria.get('excludePromotedEnvironments') or []),
                'includeAllProjects': criteria.get('includeAllProjects'),
                'includedProjects': sortedOrNone(criteria.get('includedProjects')),
                'createdBeforeInMonths': criteria.get('createdBeforeInMonths'),
            },
        }


if __name__ == '__main__':
    main()
