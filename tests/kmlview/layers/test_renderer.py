"""Tests for the KML renderer — the independent entity loader."""

import asyncio

import pytest

from kmlview.errors import RenderLoadError
from kmlview.layers.layer import GeometryPresence
from kmlview.layers.parsers.kml import parse_kml_document
from kmlview.layers.renderable import KmlRenderer


def _load(content, **kwargs):
    return asyncio.run(KmlRenderer().load(content, **kwargs))


@pytest.mark.unit
class TestKmlRenderer:

    def test_one_entity_per_feature_in_document_order(self, patrol_kml):
        ds = _load(patrol_kml)
        assert [e.name for e in ds.entities] == [
            "Patrol", "Points", "HQ", "Gate", "Routes", "Patrol Route", "Zone Alpha",
        ]
        assert len({e.entity_id for e in ds.entities}) == 7

    def test_containers_have_no_geometry(self, patrol_kml):
        ds = _load(patrol_kml)
        containers = [ds.entities[i] for i in (0, 1, 4)]
        assert all(e.geometry is GeometryPresence.NONE for e in containers)
        assert all(e.coordinate is None for e in containers)

    def test_geometry_presence_and_first_vertex(self, patrol_kml):
        ds = _load(patrol_kml)
        hq, route, zone = ds.entities[2], ds.entities[5], ds.entities[6]
        assert hq.geometry is GeometryPresence.POINT
        assert hq.coordinate == pytest.approx((-122.4194, 37.7749))
        assert route.geometry is GeometryPresence.LINE
        assert route.coordinate == pytest.approx((-122.4, 37.77))
        assert zone.geometry is GeometryPresence.POLYGON
        assert zone.coordinate == pytest.approx((-122.4, 37.77))

    def test_name_defaults_to_document_name(self, patrol_kml):
        assert _load(patrol_kml).name == "Patrol"
        assert _load(patrol_kml, name="patrol.kml").name == "patrol.kml"

    def test_clamp_to_ground_recorded(self, patrol_kml):
        assert _load(patrol_kml, clamp_to_ground=False).clamp_to_ground is False

    def test_entities_start_visible(self, patrol_kml):
        ds = _load(patrol_kml)
        assert all(e.visible and e.label_visible and e.marker_visible for e in ds.entities)

    def test_unparsable_geometry_has_no_presence(self):
        kml = "<kml><Document><Placemark><name>B</name><Point><coordinates>x,y</coordinates></Point></Placemark></Document></kml>"
        pm = _load(kml).entities[1]
        assert pm.name == "B"
        assert pm.geometry is GeometryPresence.NONE

    def test_unnamed_placemark_has_empty_name(self):
        kml = "<kml><Folder><Placemark><Point><coordinates>1,2</coordinates></Point></Placemark></Folder></kml>"
        assert _load(kml).entities[1].name == ""

    def test_malformed_xml_raises(self):
        with pytest.raises(RenderLoadError):
            _load("<kml><Document>")

    def test_multigeometry_takes_first_geometry_in_document_order(self):
        kml = (
            "<kml><Document><Placemark><name>Mixed</name><MultiGeometry>"
            "<LineString><coordinates>3,4,0 5,6,0</coordinates></LineString>"
            "<Point><coordinates>1,2,0</coordinates></Point>"
            "</MultiGeometry></Placemark></Document></kml>"
        )
        pm = _load(kml).entities[1]
        assert pm.geometry is GeometryPresence.LINE
        assert pm.coordinate == pytest.approx((3.0, 4.0))
        # Same representative vertex as the places tree
        assert parse_kml_document(kml).children[0].coordinate == pytest.approx(pm.coordinate)

    def test_deeply_nested_document(self, deep_kml):
        ds = _load(deep_kml)
        assert len(ds.entities) == 1002
        assert ds.entities[-1].name == "Bottom"
        assert ds.entities[-1].coordinate == pytest.approx((1.0, 2.0))
