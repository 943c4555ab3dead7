"""Dataclasses shared by the parser, the renderer, and the places core.

All coordinates are (lon, lat) tuples in KML order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

Coordinate = tuple[float, float]

# Tags that the places tree treats as features
FEATURE_TAGS = ("Document", "Folder", "Placemark")
CONTAINER_TAGS = ("Document", "Folder")


@dataclass
class FeatureElement:
    """One Document, Folder or Placemark from a parsed KML document.

    Attributes:
        tag: Local KML tag ("Document", "Folder", "Placemark").
        name: Stripped text of the direct <name> child, or None.
        children: Child feature elements in document order.
        coordinate: First vertex of the placemark's Point, LineString or
            MultiGeometry, or None (always None for containers).
    """

    tag: str
    name: str | None = None
    children: list[FeatureElement] = field(default_factory=list)
    coordinate: Coordinate | None = None

    @property
    def is_placemark(self) -> bool:
        return self.tag == "Placemark"

    @property
    def display_name(self) -> str:
        return self.name or self.tag


class GeometryPresence(str, Enum):
    """Geometry carried by a rendered entity."""

    POINT = "point"
    LINE = "line"
    POLYGON = "polygon"
    NONE = "none"


@dataclass
class RenderableInstance:
    """A single rendered entity (point, line, polygon, or bare container).

    Attributes:
        entity_id: Renderer-assigned identifier, unique within a data source.
        name: Display string, possibly empty.
        geometry: Which geometry the entity carries.
        coordinate: Representative (lon, lat), the first vertex, if any.
        visible: Whether the entity is drawn at all.
        label_visible: Whether the entity's text label is drawn.
        marker_visible: Whether the entity's icon/billboard is drawn.
    """

    entity_id: str
    name: str
    geometry: GeometryPresence = GeometryPresence.NONE
    coordinate: Coordinate | None = None
    visible: bool = True
    label_visible: bool = True
    marker_visible: bool = True

    @property
    def has_geometry(self) -> bool:
        return self.geometry is not GeometryPresence.NONE


@dataclass
class DataSource:
    """The renderer's entity collection for one loaded document.

    Attributes:
        name: Document name (or file name) the collection came from.
        entities: Rendered entities in document order.
        clamp_to_ground: Whether geometry was loaded clamped to terrain.
        destroyed: Set once the collection has been retired from a view.
    """

    name: str
    entities: list[RenderableInstance]
    clamp_to_ground: bool = True
    destroyed: bool = False
