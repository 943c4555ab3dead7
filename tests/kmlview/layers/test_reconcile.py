"""Tests for the entity reconciler — name pools, nearest tie-break, claims."""

import pytest

from kmlview.layers.geokey import geo_key
from kmlview.layers.layer import FeatureElement, GeometryPresence, RenderableInstance
from kmlview.layers.reconcile import (
    PlacemarkRecord,
    build_entity_index,
    placemark_records,
    reconcile,
)
from kmlview.layers.tree import build_tree

POINT = GeometryPresence.POINT


def _record(node_id, name, coordinate=None):
    return PlacemarkRecord(
        node_id=node_id, name=name, coordinate=coordinate, geo_key=geo_key(name, coordinate),
    )


def _entity(entity_id, name, coordinate=None, geometry=POINT):
    return RenderableInstance(entity_id=entity_id, name=name, geometry=geometry, coordinate=coordinate)


def _ids(mapping):
    return {key: [e.entity_id for e in entities] for key, entities in mapping.items()}


@pytest.mark.unit
class TestReconcile:

    def test_unique_name_match(self):
        mapping = reconcile(
            [_record(1, "HQ", (-122.4194, 37.7749))],
            [_entity("e1", "HQ", (-122.4194, 37.7749))],
        )
        assert _ids(mapping) == {"HQ|-122.4194,37.7749": ["e1"]}

    def test_same_name_assigned_by_nearest_distance(self):
        records = [_record(1, "Site", (-122.0, 37.0)), _record(2, "Site", (-122.001, 37.001))]
        entities = [_entity("far", "Site", (-122.001, 37.001)), _entity("near", "Site", (-122.0, 37.0))]
        mapping = reconcile(records, entities)
        assert _ids(mapping) == {
            "Site|-122,37": ["near"],
            "Site|-122.001,37.001": ["far"],
        }

    def test_injective_no_shared_assignments(self):
        records = [_record(i, "Site", (-122.0 - i * 0.001, 37.0)) for i in range(4)]
        entities = [_entity(f"e{i}", "Site", (-122.0 - i * 0.001, 37.0)) for i in range(4)]
        mapping = reconcile(records, entities)
        assigned = [e.entity_id for group in mapping.values() for e in group]
        assert sorted(assigned) == ["e0", "e1", "e2", "e3"]
        assert len(assigned) == len(set(assigned))

    def test_later_placemark_cannot_reuse_claimed_entity(self):
        records = [_record(1, "Site", (0.0, 0.0)), _record(2, "Site", (0.0, 0.0001))]
        mapping = reconcile(records, [_entity("only", "Site", (0.0, 0.0))])
        assert _ids(mapping) == {"Site|0,0": ["only"]}

    def test_unpositioned_placemark_matches_unique_name(self):
        mapping = reconcile([_record(1, "Lonely")], [_entity("e1", "Lonely", (10.0, 10.0))])
        assert _ids(mapping) == {"Lonely": ["e1"]}

    def test_candidates_without_coordinates_take_first(self):
        records = [_record(1, "Gate", (1.0, 1.0))]
        entities = [_entity("g1", "Gate"), _entity("g2", "Gate")]
        assert _ids(reconcile(records, entities)) == {"Gate|1,1": ["g1"]}

    def test_distance_ties_keep_pool_order(self):
        records = [_record(1, "Tie", (0.0, 0.0))]
        entities = [_entity("first", "Tie", (0.0, 0.001)), _entity("second", "Tie", (0.0, -0.001))]
        assert _ids(reconcile(records, entities)) == {"Tie|0,0": ["first"]}

    def test_candidates_missing_coordinates_are_skipped_for_distance(self):
        records = [_record(1, "Mix", (5.0, 5.0))]
        entities = [_entity("bare", "Mix"), _entity("placed", "Mix", (5.1, 5.1))]
        assert _ids(reconcile(records, entities)) == {"Mix|5,5": ["placed"]}

    def test_entities_without_geometry_are_excluded(self):
        entities = [
            _entity("folder", "HQ", geometry=GeometryPresence.NONE),
            _entity("point", "HQ", (1.0, 1.0)),
        ]
        assert _ids(reconcile([_record(1, "HQ", (1.0, 1.0))], entities)) == {"HQ|1,1": ["point"]}

    def test_names_are_trimmed_on_both_sides(self):
        mapping = reconcile([_record(1, " HQ ", (1.0, 1.0))], [_entity("e1", "HQ  ", (2.0, 2.0))])
        assert _ids(mapping) == {"HQ|1,1": ["e1"]}

    def test_unmatched_placemark_has_no_entry(self):
        mapping = reconcile([_record(1, "Ghost", (1.0, 1.0))], [_entity("e1", "Other", (1.0, 1.0))])
        assert mapping == {}

    def test_exact_key_fallback_takes_all_unclaimed(self):
        # Several same-named candidates, but the placemark has no coordinate:
        # only the exact (name-only) key index can decide.
        records = [_record(1, "Gate"), _record(2, "Gate")]
        entities = [_entity("g1", "Gate"), _entity("g2", "Gate")]
        mapping = reconcile(records, entities)
        assert _ids(mapping) == {"Gate": ["g1", "g2"]}

    def test_exact_key_fallback_misses_positioned_entities(self):
        records = [_record(1, "Gate")]
        entities = [_entity("g1", "Gate", (1.0, 1.0)), _entity("g2", "Gate", (2.0, 2.0))]
        assert reconcile(records, entities) == {}

    def test_colliding_keys_accumulate(self):
        records = [_record(1, "Dup", (1.0, 1.0)), _record(2, "Dup", (1.0, 1.0))]
        entities = [_entity("d1", "Dup", (1.0, 1.0)), _entity("d2", "Dup", (1.0, 1.0))]
        assert _ids(reconcile(records, entities)) == {"Dup|1,1": ["d1", "d2"]}

    def test_deterministic_rerun(self):
        records = [_record(i, "Site", (i * 0.01, 0.0)) for i in range(5)]
        entities = [_entity(f"e{i}", "Site", (0.04 - i * 0.01, 0.0)) for i in range(5)]
        first = _ids(reconcile(records, entities))
        second = _ids(reconcile(records, entities))
        assert first == second
        assert first["Site|0,0"] == ["e4"]

    def test_empty_inputs(self):
        assert reconcile([], []) == {}
        assert reconcile([_record(1, "A")], []) == {}


@pytest.mark.unit
class TestHelpers:

    def test_placemark_records_follow_tree_order(self, two_folder_tree):
        records = placemark_records(two_folder_tree)
        assert [r.node_id for r in records] == [3, 4, 6]
        assert records[0].geo_key == "P1|-122,37"
        assert records[0].coordinate == (-122.0, 37.0)

    def test_placemark_record_key_is_the_leaf_key(self):
        leaf = FeatureElement(tag="Placemark", name="Lonely")
        tree = build_tree(FeatureElement(tag="Folder", name="F", children=[leaf]))
        (record,) = placemark_records(tree)
        assert record.geo_key == tree.get(2).geo_keys[0] == "Lonely"
        assert record.coordinate is None

    def test_build_entity_index(self):
        entities = [
            _entity("a", "A", (1.0, 2.0)),
            _entity("b", "A", (1.0, 2.0)),
            _entity("c", "C"),
            _entity("none", "A", geometry=GeometryPresence.NONE),
        ]
        assert _ids(build_entity_index(entities)) == {"A|1,2": ["a", "b"], "C": ["c"]}
