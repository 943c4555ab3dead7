"""Places tree — the folder/placemark hierarchy as an id-addressed arena.

Nodes reference children and parent by integer id, never by object, so
that the toggle passes in ``kmlview.layers.toggles`` are plain loops over
``nodes_by_id``. A tree is built once per loaded document and replaced
wholesale on the next load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from kmlview.layers.geokey import geo_key
from kmlview.layers.layer import Coordinate, FeatureElement


class NodeKind(str, Enum):
    FOLDER = "folder"
    PLACEMARK = "placemark"


@dataclass
class FeatureNode:
    """One folder, document root, or placemark in the places tree.

    Attributes:
        id: Unique id, assigned depth-first starting at 1.
        parent_id: Id of the owning folder; None for the root.
        name: Display name (falls back to the tag).
        tag: Original KML tag ("Document", "Folder", "Placemark").
        kind: FOLDER or PLACEMARK; a Document root is a FOLDER.
        children: Child ids in document order; empty for placemarks.
        checked: Toggle state.
        indeterminate: Mixed state; only folders with children, implies checked.
        expanded: Whether the node's children are shown in the tree UI.
        geo_keys: Geo-keys reachable in this subtree, de-duplicated.
        coordinate: Placemark's first (lon, lat), if any.
    """

    id: int
    parent_id: int | None
    name: str
    tag: str
    kind: NodeKind
    children: list[int] = field(default_factory=list)
    checked: bool = True
    indeterminate: bool = False
    expanded: bool = False
    geo_keys: list[str] = field(default_factory=list)
    coordinate: Coordinate | None = None

    @property
    def is_placemark(self) -> bool:
        return self.kind is NodeKind.PLACEMARK

    @property
    def has_children(self) -> bool:
        return bool(self.children)


@dataclass
class PlaceTree:
    """Arena of FeatureNodes for one loaded document."""

    nodes_by_id: dict[int, FeatureNode]
    root_id: int

    def get(self, node_id: int) -> FeatureNode | None:
        return self.nodes_by_id.get(node_id)

    @property
    def root(self) -> FeatureNode:
        return self.nodes_by_id[self.root_id]

    def __len__(self) -> int:
        return len(self.nodes_by_id)

    def walk(self, node_id: int | None = None) -> Iterator[FeatureNode]:
        """Pre-order (document order) iteration from ``node_id`` or the root."""
        start = self.root_id if node_id is None else node_id
        stack = [start]
        while stack:
            node = self.nodes_by_id.get(stack.pop())
            if node is None:
                continue
            yield node
            stack.extend(reversed(node.children))

    def placemarks(self) -> list[FeatureNode]:
        """Placemark leaves in tree order."""
        return [n for n in self.walk() if n.is_placemark]

    def ancestors(self, node_id: int) -> Iterator[FeatureNode]:
        """Parents of ``node_id`` from nearest to the root."""
        node = self.nodes_by_id.get(node_id)
        while node is not None and node.parent_id is not None:
            node = self.nodes_by_id.get(node.parent_id)
            if node is not None:
                yield node

    def totals(self) -> tuple[int, int]:
        """Return (folders, placemarks) counts."""
        placemarks = sum(1 for n in self.nodes_by_id.values() if n.is_placemark)
        return len(self.nodes_by_id) - placemarks, placemarks


def build_tree(root_feature: FeatureElement) -> PlaceTree:
    """Build the places tree from a parsed root feature.

    Ids are assigned in depth-first pre-order. Placemark geo-keys come from
    the placemark's own name and first coordinate; folder geo-keys are the
    de-duplicated union of their children's, gathered on the way back up.
    """
    nodes_by_id: dict[int, FeatureNode] = {}
    order: list[FeatureNode] = []

    stack: list[tuple[FeatureElement, int | None]] = [(root_feature, None)]
    while stack:
        feature, parent_id = stack.pop()
        node = _new_node(feature, len(order) + 1, parent_id)
        nodes_by_id[node.id] = node
        order.append(node)
        if parent_id is not None:
            nodes_by_id[parent_id].children.append(node.id)
        if not feature.is_placemark:
            stack.extend((child, node.id) for child in reversed(feature.children))

    # Reverse pre-order reaches every child before its parent
    for node in reversed(order):
        if node.is_placemark:
            continue
        keys: list[str] = []
        for cid in node.children:
            keys.extend(nodes_by_id[cid].geo_keys)
        # dict.fromkeys keeps first-seen order
        node.geo_keys = list(dict.fromkeys(keys))

    return PlaceTree(nodes_by_id=nodes_by_id, root_id=order[0].id)


def _new_node(feature: FeatureElement, node_id: int, parent_id: int | None) -> FeatureNode:
    name = feature.display_name
    if feature.is_placemark:
        return FeatureNode(
            id=node_id,
            parent_id=parent_id,
            name=name,
            tag=feature.tag,
            kind=NodeKind.PLACEMARK,
            expanded=False,
            geo_keys=[geo_key(name, feature.coordinate)],
            coordinate=feature.coordinate,
        )
    return FeatureNode(
        id=node_id,
        parent_id=parent_id,
        name=name,
        tag=feature.tag,
        kind=NodeKind.FOLDER,
        expanded=True,
    )
