"""Shared KML fixtures for the places core and API tests."""

from __future__ import annotations

import pytest

from kmlview.layers.layer import FeatureElement
from kmlview.layers.tree import PlaceTree, build_tree


# Root{Folder A{Site @ (-122.0, 37.0), Site @ (-122.001, 37.001)}}
SITE_KML = """\
<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <name>Root</name>
    <Folder>
      <name>A</name>
      <Placemark>
        <name>Site</name>
        <Point><coordinates>-122.00000,37.00000,0</coordinates></Point>
      </Placemark>
      <Placemark>
        <name>Site</name>
        <Point><coordinates>-122.00100,37.00100,0</coordinates></Point>
      </Placemark>
    </Folder>
  </Document>
</kml>
"""

# Two folders, a route, and a polygon-only placemark (no tree coordinate)
PATROL_KML = """\
<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <name>Patrol</name>
    <Style id="red"><LineStyle><width>2</width></LineStyle></Style>
    <Folder>
      <name>Points</name>
      <Placemark>
        <name>HQ</name>
        <Point><coordinates>-122.4194,37.7749,10</coordinates></Point>
      </Placemark>
      <Placemark>
        <name>Gate</name>
        <Point><coordinates>-122.4200,37.7755,0</coordinates></Point>
      </Placemark>
    </Folder>
    <Folder>
      <name>Routes</name>
      <Placemark>
        <name>Patrol Route</name>
        <LineString>
          <coordinates>
            -122.4,37.77,0 -122.41,37.78,0 -122.42,37.79,0
          </coordinates>
        </LineString>
      </Placemark>
      <Placemark>
        <name>Zone Alpha</name>
        <Polygon>
          <outerBoundaryIs>
            <LinearRing>
              <coordinates>
                -122.4,37.77,0 -122.41,37.78,0 -122.42,37.77,0 -122.4,37.77,0
              </coordinates>
            </LinearRing>
          </outerBoundaryIs>
        </Polygon>
      </Placemark>
    </Folder>
  </Document>
</kml>
"""

# Document{L0{L1{... L999{Bottom @ (1, 2)}}}}
DEEP_LEVELS = 1000


def _nested_folders_kml(depth: int) -> str:
    opening = "".join(f"<Folder><name>L{i}</name>" for i in range(depth))
    closing = "</Folder>" * depth
    return (
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Document><name>Deep</name>'
        f"{opening}"
        "<Placemark><name>Bottom</name><Point><coordinates>1,2,0</coordinates></Point></Placemark>"
        f"{closing}</Document></kml>"
    )


def _placemark(name: str | None, lon: float | None = None, lat: float | None = None) -> FeatureElement:
    coordinate = (lon, lat) if lon is not None and lat is not None else None
    return FeatureElement(tag="Placemark", name=name, coordinate=coordinate)


def _folder(name: str | None, *children: FeatureElement, tag: str = "Folder") -> FeatureElement:
    return FeatureElement(tag=tag, name=name, children=list(children))


@pytest.fixture
def site_kml() -> str:
    return SITE_KML


@pytest.fixture
def patrol_kml() -> str:
    return PATROL_KML


@pytest.fixture
def deep_kml() -> str:
    """A Document with DEEP_LEVELS nested folders around a single placemark."""
    return _nested_folders_kml(DEEP_LEVELS)


@pytest.fixture
def two_folder_tree() -> PlaceTree:
    """Root(1){A(2){P1(3), P2(4)}, B(5){P3(6)}}."""
    root = _folder(
        "Root",
        _folder("A", _placemark("P1", -122.0, 37.0), _placemark("P2", -122.1, 37.1)),
        _folder("B", _placemark("P3", -122.2, 37.2)),
        tag="Document",
    )
    return build_tree(root)
