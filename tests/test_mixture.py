"""
Tests for the mixture data model.

Tests:
- Mixfile parsing and serialisation
- Origin vector navigation
- Component mutation (set, delete, prepend)
- Structural equality and cloning
- Mixture collections
"""

import copy
import json

import pytest

from mixfile.data.collection import MixtureCollection
from mixfile.data.mixfile import (
    MIXFILE_VERSION,
    InvalidOriginError,
    Mixfile,
    MixfileComponent,
    MixfileError,
    quantity_values,
    ratio_percent,
)
from mixfile.data.mixture import Mixture, beautify, components_equal
from tests.fixtures.test_data import (
    FULL_COMPONENT_MIXFILE,
    INCHI_WATER,
    NESTED_MIXFILE,
    SIMPLE_MIXFILE,
)


def _abc_mixture() -> Mixture:
    return Mixture.from_dict({
        'mixfileVersion': 0.01,
        'contents': [{'name': 'A'}, {'name': 'B'}, {'name': 'C'}],
    })


# ============================================================================
# PARSING & SERIALISATION TESTS
# ============================================================================

class TestMixfileParsing:
    """Tests for converting between JSON and the record types."""

    def test_round_trip_preserves_every_field(self):
        """Serialising and parsing again gives back the same document."""
        mixture = Mixture.from_dict(copy.deepcopy(FULL_COMPONENT_MIXFILE))
        restored = Mixture.deserialise(mixture.serialise())

        assert restored == mixture
        assert restored.to_dict() == FULL_COMPONENT_MIXFILE

    def test_round_trip_nested(self):
        mixture = Mixture.from_dict(copy.deepcopy(NESTED_MIXFILE))
        assert json.loads(mixture.serialise()) == NESTED_MIXFILE

    def test_json_keys_map_to_attributes(self):
        mixture = Mixture.from_dict(copy.deepcopy(FULL_COMPONENT_MIXFILE))
        root = mixture.mixfile

        assert root.inchi_key == 'CSCPPACGZOOCGX-UHFFFAOYSA-N'
        assert root.identifiers['PubChem'] == ['180']
        assert root.links['Wikipedia'].startswith('https://')

    def test_version_comes_first(self, simple_mixture):
        assert list(simple_mixture.to_dict().keys())[0] == 'mixfileVersion'

    def test_absent_fields_are_omitted(self, simple_mixture):
        data = simple_mixture.to_dict()
        assert 'description' not in data
        assert 'ratio' not in data['contents'][1]

    def test_missing_version_rejected(self):
        with pytest.raises(MixfileError, match="mixfileVersion"):
            Mixture.from_dict({'name': 'no version'})

    def test_non_numeric_version_rejected(self):
        with pytest.raises(MixfileError):
            Mixture.from_dict({'mixfileVersion': '0.01'})

    def test_invalid_json_rejected(self):
        with pytest.raises(MixfileError):
            Mixture.deserialise('{"mixfileVersion": 0.01,')

    def test_wrong_field_types_rejected(self):
        """Type errors anywhere in the tree are reported."""
        bad_inputs = [
            {'mixfileVersion': 0.01, 'name': 5},
            {'mixfileVersion': 0.01, 'synonyms': 'single'},
            {'mixfileVersion': 0.01, 'quantity': 'lots'},
            {'mixfileVersion': 0.01, 'ratio': 1},
            {'mixfileVersion': 0.01, 'identifiers': {'CASRN': 7732}},
            {'mixfileVersion': 0.01, 'contents': {'name': 'water'}},
            {'mixfileVersion': 0.01, 'contents': [{'name': 'ok', 'contents': ['bad']}]},
        ]
        for data in bad_inputs:
            with pytest.raises(MixfileError):
                Mixture.from_dict(data)

    def test_unknown_fields_dropped(self):
        mixture = Mixture.from_dict({'mixfileVersion': 0.01, 'name': 'x', 'colour': 'blue'})
        assert mixture.to_dict() == {'mixfileVersion': 0.01, 'name': 'x'}

    def test_null_fields_treated_as_absent(self):
        mixture = Mixture.from_dict({'mixfileVersion': 0.01, 'name': None, 'contents': None})
        assert mixture.is_empty()

    def test_beautify_puts_nested_values_on_own_line(self):
        text = beautify({'name': 'x', 'contents': [{'name': 'y'}]})
        lines = text.split('\n')

        assert '    "contents":' in lines
        assert lines[lines.index('    "contents":') + 1] == '    ['
        assert json.loads(text) == {'name': 'x', 'contents': [{'name': 'y'}]}

    def test_serialise_component(self, simple_mixture):
        text = Mixture.serialise_component(simple_mixture.get_component([1]))
        assert json.loads(text) == {'name': 'water', 'inchi': INCHI_WATER}


class TestQuantityHelpers:
    """Tests for quantity and ratio interpretation."""

    def test_scalar_quantity(self):
        assert quantity_values(MixfileComponent(quantity=5)) == [5.0]

    def test_range_quantity(self):
        assert quantity_values(MixfileComponent(quantity=[1, 2])) == [1.0, 2.0]

    def test_malformed_range_is_no_quantity(self):
        assert quantity_values(MixfileComponent(quantity=[1, 2, 3])) is None
        assert quantity_values(MixfileComponent(quantity=[1])) is None
        assert quantity_values(MixfileComponent()) is None

    def test_ratio_percent(self):
        assert ratio_percent(MixfileComponent(ratio=[1, 4])) == 25
        assert ratio_percent(MixfileComponent(ratio=[1, 0])) is None
        assert ratio_percent(MixfileComponent(ratio=[1])) is None


# ============================================================================
# NAVIGATION TESTS
# ============================================================================

class TestNavigation:
    """Tests for origin vector addressing."""

    def test_get_root(self, nested_mixture):
        assert nested_mixture.get_component([]) is nested_mixture.mixfile

    def test_get_nested(self, nested_mixture):
        assert nested_mixture.get_component([0, 0]).name == 'ethanol'
        assert nested_mixture.get_component([1, 0]).name == 'sodium chloride'

    def test_invalid_origin(self, nested_mixture):
        for origin in ([2], [0, 2], [0, 0, 0], [-1]):
            with pytest.raises(InvalidOriginError):
                nested_mixture.get_component(origin)

    def test_invalid_origin_is_index_error(self, simple_mixture):
        with pytest.raises(IndexError):
            simple_mixture.get_component([5])

    def test_parent_component(self, nested_mixture):
        assert nested_mixture.get_parent_component([]) is None
        assert nested_mixture.get_parent_component([1, 1]).name == 'solution B'

    def test_origins_are_pre_order(self, nested_mixture):
        assert nested_mixture.get_origins() == [[], [0], [0, 0], [0, 1], [1], [1, 0], [1, 1]]

    def test_components_aligned_with_origins(self, nested_mixture):
        names = [comp.name for comp in nested_mixture.get_components()]
        assert names == ['Reagent kit', 'solution A', 'ethanol', 'water', 'solution B', 'sodium chloride', 'water']

    def test_split_origin(self):
        assert Mixture.split_origin([]) == (None, None)
        assert Mixture.split_origin([3]) == ([], 3)
        assert Mixture.split_origin([1, 2, 0]) == ([1, 2], 0)


# ============================================================================
# MUTATION TESTS
# ============================================================================

class TestMutation:
    """Tests for set, delete and prepend."""

    def test_delete_first_of_three(self):
        """Deleting a leaf leaves its siblings in order."""
        mixture = _abc_mixture()
        assert mixture.delete_component([0])
        assert [c.name for c in mixture.mixfile.contents] == ['B', 'C']

    def test_delete_splices_children(self, nested_mixture):
        assert nested_mixture.delete_component([0])
        names = [c.name for c in nested_mixture.mixfile.contents]
        assert names == ['ethanol', 'water', 'solution B']

    def test_delete_root_refused(self, simple_mixture):
        before = simple_mixture.clone()
        assert simple_mixture.delete_component([]) is False
        assert simple_mixture == before

    def test_delete_invalid_origin(self, simple_mixture):
        with pytest.raises(InvalidOriginError):
            simple_mixture.delete_component([7])

    def test_set_component_merges_fields(self, simple_mixture):
        changed = simple_mixture.set_component([1], {'quantity': 99.1, 'units': 'w/v%'})
        water = simple_mixture.get_component([1])

        assert changed
        assert water.quantity == 99.1
        assert water.inchi == INCHI_WATER

    def test_set_component_accepts_json_keys(self, simple_mixture):
        simple_mixture.set_component([1], {'inchiKey': 'XLYOFNOQVPJJNP-UHFFFAOYSA-N'})
        assert simple_mixture.get_component([1]).inchi_key == 'XLYOFNOQVPJJNP-UHFFFAOYSA-N'

    def test_set_component_none_deletes(self, simple_mixture):
        simple_mixture.set_component([0], {'quantity': None, 'units': None})
        nacl = simple_mixture.get_component([0])
        assert nacl.quantity is None and nacl.units is None

    def test_set_component_unchanged(self, simple_mixture):
        assert simple_mixture.set_component([1], {'name': 'water'}) is False

    def test_set_component_from_component(self, simple_mixture):
        changed = simple_mixture.set_component([1], MixfileComponent(description='deionised'))
        water = simple_mixture.get_component([1])
        assert changed
        assert water.description == 'deionised'
        assert water.name == 'water'

    def test_set_component_unknown_key(self, simple_mixture):
        with pytest.raises(MixfileError):
            simple_mixture.set_component([0], {'colour': 'white'})

    def test_set_component_converts_contents(self, simple_mixture):
        simple_mixture.set_component([1], {'contents': [{'name': 'deuterium oxide'}]})
        assert simple_mixture.get_component([1, 0]).name == 'deuterium oxide'

    def test_set_component_rejects_wrong_types(self, simple_mixture):
        """Values that could not be read back from JSON are refused before anything changes."""
        before = simple_mixture.clone()
        for fields in ({'quantity': 'lots'}, {'synonyms': 'x'}, {'ratio': [1, 'two']},
                       {'identifiers': ['CASRN']}, {'contents': {'name': 'x'}}):
            with pytest.raises(MixfileError):
                simple_mixture.set_component([0], fields)
        assert simple_mixture == before

    def test_set_component_result_deserialises(self, simple_mixture):
        simple_mixture.set_component([0], {'quantity': [0.5, 1], 'synonyms': ['salt'], 'relation': '<'})
        restored = Mixture.deserialise(simple_mixture.serialise())
        assert restored == simple_mixture
        assert restored.get_component([0]).synonyms == ['salt']

    def test_prepend_before_child(self, simple_mixture):
        simple_mixture.prepend_before([1], MixfileComponent(name='solvent'))

        assert simple_mixture.get_component([1]).name == 'solvent'
        assert simple_mixture.get_component([1, 0]).name == 'water'
        assert len(simple_mixture.mixfile.contents) == 2

    def test_prepend_before_root(self, simple_mixture):
        simple_mixture.prepend_before([], MixfileComponent(name='kit'))
        root = simple_mixture.mixfile

        assert root.name == 'kit'
        assert root.mixfile_version == MIXFILE_VERSION
        assert len(root.contents) == 1
        assert root.contents[0].name == 'Saline'
        assert [c.name for c in root.contents[0].contents] == ['sodium chloride', 'water']

    def test_prepend_copies_new_component(self, simple_mixture):
        comp = MixfileComponent(name='solvent')
        simple_mixture.prepend_before([1], comp)
        comp.name = 'changed'
        assert simple_mixture.get_component([1]).name == 'solvent'


# ============================================================================
# EQUALITY & CLONING TESTS
# ============================================================================

class TestEquality:
    """Tests for structural comparison."""

    def test_equal_to_clone(self, nested_mixture):
        assert nested_mixture.clone() == nested_mixture

    def test_clone_is_independent(self, nested_mixture):
        clone = nested_mixture.clone()
        clone.get_component([0, 0]).quantity = 80
        assert nested_mixture.get_component([0, 0]).quantity == 70
        assert clone != nested_mixture

    def test_child_order_matters(self):
        m1 = _abc_mixture()
        m2 = _abc_mixture()
        m2.mixfile.contents.reverse()
        assert not m1.equals(m2)

    def test_absent_contents_equals_empty(self):
        c1 = MixfileComponent(name='x')
        c2 = MixfileComponent(name='x', contents=[])
        assert components_equal(c1, c2)

    def test_version_matters(self, simple_mixture):
        other = simple_mixture.clone()
        other.mixfile.mixfile_version = 0.02
        assert simple_mixture != other

    def test_none_is_not_equal(self, simple_mixture):
        assert not simple_mixture.equals(None)


class TestEmptiness:
    """Tests for placeholder detection."""

    def test_new_mixture_is_empty(self, empty_mixture):
        assert empty_mixture.is_empty()
        assert empty_mixture.mixfile.mixfile_version == MIXFILE_VERSION

    def test_component_with_field_not_empty(self):
        assert not Mixture.is_component_empty(MixfileComponent(units='g'))

    def test_component_with_children_not_empty(self):
        assert not Mixture.is_component_empty(MixfileComponent(contents=[MixfileComponent()]))

    def test_component_only_drops_version(self):
        root = Mixfile(name='x', mixfile_version=0.5)
        comp = root.component_only()
        assert type(comp) is MixfileComponent
        assert comp.name == 'x'


# ============================================================================
# COLLECTION TESTS
# ============================================================================

class TestMixtureCollection:
    """Tests for ordered lists of mixtures."""

    def test_deserialise_and_serialise(self):
        text = json.dumps([SIMPLE_MIXFILE, NESTED_MIXFILE])
        collection = MixtureCollection.deserialise(text)

        assert collection.count == 2
        assert json.loads(collection.serialise()) == [SIMPLE_MIXFILE, NESTED_MIXFILE]

    def test_deserialise_requires_array(self):
        with pytest.raises(MixfileError, match="array"):
            MixtureCollection.deserialise(json.dumps(SIMPLE_MIXFILE))

    def test_get_returns_clone(self, simple_mixture):
        collection = MixtureCollection([simple_mixture])
        fetched = collection.get_mixture(0)
        fetched.mixfile.name = 'changed'
        assert collection.get_mixture(0).mixfile.name == 'Saline'

    def test_editing(self, simple_mixture, nested_mixture, empty_mixture):
        collection = MixtureCollection()
        assert collection.append_mixture(simple_mixture) == 0
        assert collection.append_mixture(nested_mixture) == 1
        collection.insert_mixture(0, empty_mixture)
        assert [m.mixfile.name for m in collection] == [None, 'Saline', 'Reagent kit']

        collection.swap_mixtures(1, 2)
        assert [m.mixfile.name for m in collection] == [None, 'Reagent kit', 'Saline']

        collection.delete_mixture(0)
        collection.set_mixture(0, simple_mixture)
        assert [m.mixfile.name for m in collection] == ['Saline', 'Saline']
        assert len(collection) == 2
