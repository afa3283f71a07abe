# Public Domain 2021, Jared Schmidt <jared.schmidt.civ@gmail.com>
# CC0 1.0 Universal license (see https://creativecommons.org/publicdomain/zero/1.0/)
# License applies only to the contents of this file, not the collection as a whole

import pytest

from ansible_collections.jfrog.platform.plugins.modules import artifactory_property_set
from ansible_collections.jfrog.platform.plugins.modules.artifactory_property_set import (
    ArtifactoryPropertySet,
    checkPropertySets,
    toApiModel,
)

CONFIG_XML = '''<config>
    <propertySets>
        <propertySet>
            <name>qa</name>
            <visible>true</visible>
            <properties>
                <property>
                    <name>status</name>
                    <predefinedValues>
                        <predefinedValue><value>passed-QA</value><defaultValue>true</defaultValue></predefinedValue>
                        <predefinedValue><value>failed-QA</value><defaultValue>false</defaultValue></predefinedValue>
                    </predefinedValues>
                    <closedPredefinedValues>true</closedPredefinedValues>
                    <multipleChoice>false</multipleChoice>
                </property>
                <property>
                    <name>owner</name>
                    <closedPredefinedValues>false</closedPredefinedValues>
                    <multipleChoice>false</multipleChoice>
                </property>
            </properties>
        </propertySet>
    </propertySets>
</config>
'''

FLAT_VALUES_XML = '''<config>
    <propertySets>
        <propertySet>
            <name>flat</name>
            <visible>false</visible>
            <properties>
                <property>
                    <name>tier</name>
                    <predefinedValues><value>gold</value><defaultValue>true</defaultValue></predefinedValues>
                    <predefinedValues><value>bronze</value><defaultValue>false</defaultValue></predefinedValues>
                    <closedPredefinedValues>true</closedPredefinedValues>
                    <multipleChoice>true</multipleChoice>
                </property>
            </properties>
        </propertySet>
    </propertySets>
</config>
'''


def prop(name, values=(), closed=False, multiple=False):
    return dict(
        name=name,
        closed_predefined_values=closed,
        multiple_choice=multiple,
        predefined_values=[dict(name=value, default_value=default) for value, default in values],
    )


def propertySet(**overrides):
    options = dict(
        name='qa',
        visible=True,
        properties=[
            prop('status', [('passed-QA', True), ('failed-QA', False)], closed=True),
            prop('owner'),
        ],
    )
    options.update(overrides)
    return options


def test_multiple_choice_needs_closed_values():
    with pytest.raises(ValueError):
        checkPropertySets([propertySet(properties=[prop('status', multiple=True)])], 'Present')


def test_at_least_one_property():
    with pytest.raises(ValueError):
        checkPropertySets([propertySet(properties=[])], 'Present')
    checkPropertySets([propertySet(properties=[])], 'Absent')


def test_model_is_sorted_by_name():
    model = toApiModel(propertySet())
    assert [p['name'] for p in model['properties']] == ['owner', 'status']
    assert [v['name'] for v in model['properties'][1]['predefinedValues']] == ['failed-QA', 'passed-QA']


def test_both_value_layouts_are_read(artifactory):
    artifactory.configuration(FLAT_VALUES_XML)
    api = ArtifactoryPropertySet('https://artifactory.example.com', 'AccessToken', 'token')
    record = api._getConfigRecordListFromArtifactory()[0]
    assert record['visible'] is False
    assert record['properties'][0]['predefinedValues'] == [
        {'name': 'bronze', 'defaultValue': False},
        {'name': 'gold', 'defaultValue': True},
    ]


def test_matching_set_is_unchanged(artifactory, run_module):
    artifactory.configuration(CONFIG_XML)
    result, module = run_module(artifactory_property_set, dict(property_sets=[propertySet()], state='Present'))
    assert result['changed'] is False


def test_new_set_is_keyed_by_names(artifactory, run_module):
    artifactory.configuration('<config/>')
    result, module = run_module(artifactory_property_set, dict(property_sets=[propertySet()], state='Present'))
    assert result['added'] == ['qa']
    body = artifactory.patches()[0]['propertySets']['qa']
    assert body['visible'] is True
    assert body['properties']['status'] == {
        'predefinedValues': {'failed-QA': {'defaultValue': False}, 'passed-QA': {'defaultValue': True}},
        'closedPredefinedValues': True,
        'multipleChoice': False,
    }


def test_removed_properties_and_values_are_nulled(artifactory, run_module):
    artifactory.configuration(CONFIG_XML)
    result, module = run_module(artifactory_property_set, dict(
        property_sets=[propertySet(properties=[prop('status', [('passed-QA', True)], closed=True)])], state='Present'))
    assert result['updated'] == ['qa']
    properties = artifactory.patches()[0]['propertySets']['qa']['properties']
    assert properties['owner'] is None
    assert properties['status']['predefinedValues'] == {'passed-QA': {'defaultValue': True}, 'failed-QA': None}
