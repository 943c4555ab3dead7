"""Parse KML XML into a FeatureElement tree using xml.etree.ElementTree.

Only Document, Folder and Placemark elements become features; styles,
metadata and any other wrapper elements are skipped. Namespaces (KML 2.2,
2.3, or none) are reduced to local tag names.
KML coordinate format: "lng,lat,alt lng,lat,alt" (longitude first).
"""

from __future__ import annotations

import math
import xml.etree.ElementTree as ET
from typing import Iterator

from loguru import logger

from kmlview.errors import DocumentParseError, StructuralAbsenceError
from kmlview.layers.layer import CONTAINER_TAGS, FEATURE_TAGS, Coordinate, FeatureElement

# Geometry parents whose direct <coordinates> child gives a placemark position
_POSITIONED_GEOMETRY = ("Point", "LineString")


def parse_kml_document(kml_string: str) -> FeatureElement:
    """Parse a KML XML string into its root feature.

    Args:
        kml_string: Raw KML XML content.

    Returns:
        The root FeatureElement (first Document, else first Folder).

    Raises:
        DocumentParseError: The content is not well-formed XML.
        StructuralAbsenceError: No Document or Folder element exists.
    """
    try:
        root = ET.fromstring(kml_string)
    except (ET.ParseError, RecursionError) as e:
        logger.debug(f"KML parse error: {e!r}")
        raise DocumentParseError("KML parse error. Ensure the file is valid XML/KML.") from e

    root_elem = find_root_feature(root)
    if root_elem is None:
        raise StructuralAbsenceError("KML contains no Document or Folder root.")

    return _build_feature(root_elem)


def local_name(tag: str) -> str:
    """Strip a "{namespace}" prefix from an element tag."""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def find_root_feature(root: ET.Element) -> ET.Element | None:
    """Return the first Document in document order, else the first Folder."""
    first_folder = None
    for elem in root.iter():
        if not isinstance(elem.tag, str):
            continue
        tag = local_name(elem.tag)
        if tag == "Document":
            return elem
        if tag == "Folder" and first_folder is None:
            first_folder = elem
    return first_folder


def child_features(elem: ET.Element) -> list[ET.Element]:
    """Direct Document/Folder/Placemark children in document order."""
    return [c for c in elem if isinstance(c.tag, str) and local_name(c.tag) in FEATURE_TAGS]


def feature_name(elem: ET.Element) -> str | None:
    """Text of the direct <name> child, stripped; None if absent or blank."""
    for child in elem:
        if isinstance(child.tag, str) and local_name(child.tag) == "name":
            text = (child.text or "").strip()
            return text or None
    return None


def first_coordinate(placemark: ET.Element) -> Coordinate | None:
    """First (lon, lat) of a Point, LineString or MultiGeometry beneath a placemark."""
    for elem, ancestors in _iter_with_ancestors(placemark):
        if local_name(elem.tag) != "coordinates":
            continue
        parent = ancestors[-1] if ancestors else ""
        if parent in _POSITIONED_GEOMETRY or "MultiGeometry" in ancestors:
            return parse_first_coordinate(elem.text or "")
    return None


def parse_first_coordinate(coord_str: str) -> Coordinate | None:
    """Parse the first "lng,lat[,alt]" token of a KML coordinate string."""
    tokens = coord_str.split()
    if not tokens:
        return None
    parts = tokens[0].split(",")
    if len(parts) < 2:
        return None
    try:
        lon = float(parts[0])
        lat = float(parts[1])
    except ValueError:
        return None
    if not math.isfinite(lon) or not math.isfinite(lat):
        return None
    return (lon, lat)


def parse_coordinate_string(coord_str: str) -> list[Coordinate]:
    """Parse KML coordinate string: 'lng,lat,alt lng,lat,alt ...'

    Returns list of (lon, lat) tuples; malformed tokens are skipped.
    """
    coords = []
    for token in coord_str.split():
        coord = parse_first_coordinate(token)
        if coord is not None:
            coords.append(coord)
    return coords


def _build_feature(elem: ET.Element) -> FeatureElement:
    """Convert ``elem`` and its feature descendants, one stack entry per container."""
    root = _new_feature(elem)
    stack = [(elem, root)]
    while stack:
        container, feature = stack.pop()
        if feature.tag not in CONTAINER_TAGS:
            continue
        for child in child_features(container):
            child_feature = _new_feature(child)
            feature.children.append(child_feature)
            stack.append((child, child_feature))
    return root


def _new_feature(elem: ET.Element) -> FeatureElement:
    tag = local_name(elem.tag)
    feature = FeatureElement(tag=tag, name=feature_name(elem))
    if tag not in CONTAINER_TAGS:
        feature.coordinate = first_coordinate(elem)
    return feature


def _iter_with_ancestors(elem: ET.Element) -> Iterator[tuple[ET.Element, tuple[str, ...]]]:
    """Pre-order walk below ``elem`` yielding (element, local ancestor tags)."""
    stack = [(child, ()) for child in reversed(list(elem))]
    while stack:
        node, ancestors = stack.pop()
        if not isinstance(node.tag, str):
            continue
        yield node, ancestors
        path = ancestors + (local_name(node.tag),)
        stack.extend((child, path) for child in reversed(list(node)))
