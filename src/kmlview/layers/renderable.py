"""KML renderer — the independent loader that turns KML into rendered entities.

Produces one RenderableInstance per Document, Folder and Placemark in
document order. Containers carry no geometry. A placemark's geometry is
the first Point, LineString or Polygon beneath it in document order (so
MultiGeometry parts count), and its representative coordinate is that
geometry's first vertex. Inside a MultiGeometry that is the vertex the
places tree keys on too. This loader shares nothing with the places tree
parser.
"""

from __future__ import annotations

import asyncio
import xml.etree.ElementTree as ET

from loguru import logger

from kmlview.errors import RenderLoadError
from kmlview.layers.layer import (
    FEATURE_TAGS,
    DataSource,
    GeometryPresence,
    RenderableInstance,
)
from kmlview.layers.parsers.kml import parse_coordinate_string


class KmlRenderer:
    """Loads KML content into a DataSource of rendered entities."""

    async def load(
        self,
        content: str,
        *,
        name: str = "",
        clamp_to_ground: bool = True,
    ) -> DataSource:
        """Load KML text into a new DataSource.

        Args:
            content: Raw KML XML content.
            name: Name for the data source (defaults to Document/name).
            clamp_to_ground: Recorded on the data source; altitudes are
                dropped from representative coordinates either way.

        Raises:
            RenderLoadError: The content cannot be rendered.
        """
        entities, doc_name = await asyncio.to_thread(self._render, content)
        logger.debug(f"Renderer produced {len(entities)} entities")
        return DataSource(
            name=name or doc_name,
            entities=entities,
            clamp_to_ground=clamp_to_ground,
        )

    def _render(self, content: str) -> tuple[list[RenderableInstance], str]:
        try:
            root = ET.fromstring(content)
        except (ET.ParseError, RecursionError) as e:
            raise RenderLoadError(f"Renderer could not load KML: {e}") from e

        ns = _detect_namespace(root)

        doc_name = ""
        doc = root if root.tag == f"{ns}Document" else root.find(f".//{ns}Document")
        if doc is not None:
            doc_name = _direct_text(doc, "name", ns)

        entities: list[RenderableInstance] = []
        feature_tags = {f"{ns}{t}" for t in FEATURE_TAGS}
        for elem in root.iter():
            if elem.tag not in feature_tags:
                continue
            entity_id = f"entity-{len(entities) + 1}"
            name = _direct_text(elem, "name", ns)
            if elem.tag == f"{ns}Placemark":
                entities.append(_render_placemark(elem, ns, entity_id, name))
            else:
                entities.append(RenderableInstance(entity_id=entity_id, name=name))
        return entities, doc_name


def _detect_namespace(root: ET.Element) -> str:
    """Detect KML namespace from root element tag."""
    tag = root.tag
    if "{" in tag:
        return tag.split("}")[0] + "}"
    return ""


def _find_child(parent: ET.Element, tag: str, ns: str) -> ET.Element | None:
    """Find a direct or nested child element by tag."""
    return parent.find(f".//{ns}{tag}")


def _direct_text(parent: ET.Element, tag: str, ns: str) -> str:
    elem = parent.find(f"{ns}{tag}")
    if elem is not None and elem.text:
        return elem.text.strip()
    return ""


def _first_vertex(geom_elem: ET.Element, ns: str) -> tuple[float, float] | None:
    coord_elem = _find_child(geom_elem, "coordinates", ns)
    if coord_elem is None or not coord_elem.text:
        return None
    coords = parse_coordinate_string(coord_elem.text)
    return coords[0] if coords else None


_GEOMETRY_PRESENCE = {
    "Point": GeometryPresence.POINT,
    "LineString": GeometryPresence.LINE,
    "Polygon": GeometryPresence.POLYGON,
}


def _render_placemark(pm: ET.Element, ns: str, entity_id: str, name: str) -> RenderableInstance:
    """Render a Placemark from its first Point, LineString or Polygon in document order."""
    geometry_tags = {f"{ns}{t}": presence for t, presence in _GEOMETRY_PRESENCE.items()}
    for geom in pm.iter():
        presence = geometry_tags.get(geom.tag)
        if presence is None:
            continue
        coordinate = _first_vertex(geom, ns)
        if coordinate is not None:
            return RenderableInstance(
                entity_id=entity_id,
                name=name,
                geometry=presence,
                coordinate=coordinate,
            )

    return RenderableInstance(entity_id=entity_id, name=name)
