#!/usr/bin/python

# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

DOCUMENTATION = r'''
---
module: artifactory_property_set

short_description: Manages property sets that can be assigned to repositories and artifacts

version_added: "1.0.0"

description:
    - Adds, updates or removes property sets in the C(propertySets) block of the Artifactory system
      configuration (REST endpoint artifactory/api/system/configuration).
    - Properties and predefined values missing from the definition are removed from Artifactory on update.

options:
    property_sets:
        description:
          - List of property sets.  Only C(name) is needed when I(state=Absent).
        type: list
        elements: dict
        required: True
        suboptions:
            name:
                description: Property set name.
                type: str
                required: True
            visible:
                description: Defines if the list visible and assignable to the repository or artifact.
                type: bool
                default: True
            properties:
                description: Properties that are part of the property set.  At least one is required unless I(state=Absent).
                type: list
                elements: dict
                default: []
                suboptions:
                    name:
                        description: The name of the property.
                        type: str
                        required: True
                    closed_predefined_values:
                        description: Only the predefined values can be assigned.
                        type: bool
                        default: False
                    multiple_choice:
                        description: Whether or not user can select multiple values.  Needs I(closed_predefined_values=true).
                        type: bool
                        default: False
                    predefined_values:
                        description: Predefined values of the property.
                        type: list
                        elements: dict
                        default: []
                        suboptions:
                            name:
                                description: Predefined value.
                                type: str
                                required: True
                            default_value:
                                description: Whether the value is selected by default in the UI.
                                type: bool
                                default: False

extends_documentation_fragment:
    - jfrog.platform.artifactory_common_docs
    - jfrog.platform.artifactory_common_docs.state

author:
    - Jared Schmidt (@jared-schmidt-civ)
'''

EXAMPLES = r'''
- name: QA status property set
  jfrog.platform.artifactory_property_set:
    property_sets:
      - name: qa
        properties:
          - name: status
            closed_predefined_values: true
            predefined_values:
              - name: passed-QA
                default_value: true
              - name: failed-QA
    artifactory_base_url: https://artifactory.example.com
    auth_string: "{{ access_token }}"
'''

RETURN = r'''
message:
    description: Message stating whether things changed or not
    type: str
    returned: always
    sample: 'Property sets modified'
added:
    description: Names of the property sets that were added
    type: list
    returned: always
updated:
    description: Names of the property sets that were updated
    type: list
    returned: always
deleted:
    description: Names of the property sets that were deleted
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
    xmlBool,
    xmlText,
)


def run_module():
    module_args = commonArgumentSpec()
    module_args.update(
        property_sets=dict(type='list', elements='dict', required=True, options=dict(
            name=dict(type='str', required=True),
            visible=dict(type='bool', default=True),
            properties=dict(type='list', elements='dict', default=[], options=dict(
                name=dict(type='str', required=True),
                closed_predefined_values=dict(type='bool', default=False),
                multiple_choice=dict(type='bool', default=False),
                predefined_values=dict(type='list', elements='dict', default=[], options=dict(
                    name=dict(type='str', required=True),
                    default_value=dict(type='bool', default=False),
                )),
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
        checkPropertySets(module.params['property_sets'], module.params['state'])
        api = ArtifactoryPropertySet(**connectionParams(module))
        prepareConnection(module, api)
        result['changed'] = applyState(api, module.params['state'], [toApiModel(propertySet) for propertySet in module.params['property_sets']])
    except (ArtifactoryApiError, ValueError) as e:
        failFromError(module, e, result)

    result.update(api.changes)
    if result['changed']:
        result['message'] = "Property sets modified"
    else:
        result['message'] = "Property sets unchanged"

    module.exit_json(**result)


def main():
    run_module()


def checkPropertySets(propertySets, state):
    for propertySet in propertySets:
        if not propertySet['name']:
            raise ValueError('"name" must not be empty')
        if str(state).lower() == 'absent':
            continue
        if not propertySet['properties']:
            raise ValueError('Property set %s needs at least one property' % propertySet['name'])
        for prop in propertySet['properties']:
            if not prop['name']:
                raise ValueError('Property set %s has a property without a name' % propertySet['name'])
            if prop['multiple_choice'] and not prop['closed_predefined_values']:
                raise ValueError("setting closed_predefined_values to 'false' and multiple_choice to 'true' disables multiple_choice")


def toApiModel(propertySet):
    properties = []
    for prop in propertySet['properties'] or []:
        properties.append({
            'name': prop['name'],
            'closedPredefinedValues': prop['closed_predefined_values'],
            'multipleChoice': prop['multiple_choice'],
            'predefinedValues': sorted(({'name': value['name'], 'defaultValue': value['default_value']}
                                        for value in prop['predefined_values'] or []), key=lambda value: value['name']),
        })
    return {
        'name': propertySet['name'],
        'visible': propertySet['visible'],
        'properties': sorted(properties, key=lambda prop: prop['name']),
    }


def _predefinedValuesFromXml(propertyElem):
    # values are listed either wrapped (predefinedValues/predefinedValue) or as repeated predefinedValues
    elems = propertyElem.findall('predefinedValues/predefinedValue')
    if not elems:
        elems = [elem for elem in propertyElem.findall('predefinedValues') if elem.find('value') is not None]
    return sorted(({'name': xmlText(elem, 'value'), 'defaultValue': xmlBool(elem, 'defaultValue')} for elem in elems),
                  key=lambda value: value['name'])


class ArtifactoryPropertySet(ArtifactoryConfigurationApi):
    _patchPath = ('propertySets',)
    _xmlPath = 'propertySets/propertySet'
    _keyField = 'name'

    def _recordFromXml(self, elem):
        properties = []
        for prop in elem.findall('properties/property'):
            properties.append({
                'name': xmlText(prop, 'name'),
                'closedPredefinedValues': xmlBool(prop, 'closedPredefinedValues'),
                'multipleChoice': xmlBool(prop, 'multipleChoice'),
                'predefinedValues': _predefinedValuesFromXml(prop),
            })
        return {
            'name': xmlText(elem, 'name'),
            'visible': xmlBool(elem, 'visible'),
            'properties': sorted(properties, key=lambda prop: prop['name']),
        }

    def _recordToPatchBody(self, record):
        '''Property names and predefined values are keys in the PATCH document.'''
        properties = {}
        for prop in record['properties']:
            properties[prop['name']] = {
                'predefinedValues': dict((value['name'], {'defaultValue': value['defaultValue']}) for value in prop['predefinedValues']),
                'closedPredefinedValues': prop['closedPredefinedValues'],
                'multipleChoice': prop['multipleChoice'],
            }
        return {
            'visible': record['visible'],
            'properties': properties,
        }

    def _recordToUpdateBody(self, record, artifactoryRecord):
        body = self._recordToPatchBody(record)
        current = self._recordToPatchBody(artifactoryRecord)
        for name, prop in current['properties'].items():
            if name not in body['properties']:
                body['properties'][name] = None
                continue
            for value in prop['predefinedValues']:
                if value not in body['properties'][name]['predefinedValues']:
                    body['properties'][name]['predefinedValues'][value] = None
        return body


if __name__ == '__main__':
    main()
