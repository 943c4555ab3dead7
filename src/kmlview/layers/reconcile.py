"""Entity reconciler — map places-tree placemarks to rendered entities.

The places tree and the renderer's entity collection are parsed
independently from the same KML and share no identifier. Matching is a
greedy, claim-based join over the two collections:

1. entities with geometry are pooled by trimmed name;
2. for each placemark (tree order) the unclaimed same-name candidates are
   narrowed to one: a single candidate wins outright, otherwise the
   nearest to the placemark's coordinate (haversine), otherwise the first;
3. when no candidate could be chosen, an exact geo-key index is consulted
   and every unclaimed entity under the placemark's key is taken.

Every assigned entity is claimed, so no entity ever appears under two keys.
Placemarks that find nothing simply have no entry.

The name + nearest-coordinate join has no correctness guarantee when many
same-named placemarks sit within a few meters of each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from kmlview.layers.geokey import geo_key, haversine_m
from kmlview.layers.layer import Coordinate, RenderableInstance
from kmlview.layers.tree import PlaceTree

ReconciliationMap = dict[str, list[RenderableInstance]]


@dataclass(frozen=True)
class PlacemarkRecord:
    """The matching inputs of one placemark leaf."""

    node_id: int
    name: str
    coordinate: Coordinate | None
    geo_key: str


def placemark_records(tree: PlaceTree) -> list[PlacemarkRecord]:
    """Placemark leaves of ``tree`` as match records, in tree order."""
    return [
        PlacemarkRecord(
            node_id=node.id,
            name=node.name,
            coordinate=node.coordinate,
            geo_key=node.geo_keys[0],
        )
        for node in tree.placemarks()
    ]


def build_entity_index(instances: Iterable[RenderableInstance]) -> ReconciliationMap:
    """Exact geo-key index (name + rounded coordinate) of entities with geometry."""
    index: ReconciliationMap = {}
    for entity in instances:
        if not entity.has_geometry:
            continue
        index.setdefault(geo_key(entity.name, entity.coordinate), []).append(entity)
    return index


def _name_pools(instances: Iterable[RenderableInstance]) -> dict[str, list[RenderableInstance]]:
    pools: dict[str, list[RenderableInstance]] = {}
    for entity in instances:
        if not entity.has_geometry:
            continue
        pools.setdefault((entity.name or "").strip(), []).append(entity)
    return pools


def _nearest(coordinate: Coordinate, candidates: list[RenderableInstance]) -> RenderableInstance | None:
    best = None
    best_dist = float("inf")
    for candidate in candidates:
        if candidate.coordinate is None:
            continue
        d = haversine_m(coordinate, candidate.coordinate)
        if d < best_dist:
            best_dist = d
            best = candidate
    return best


def reconcile(
    placemarks: Iterable[PlacemarkRecord],
    instances: Iterable[RenderableInstance],
) -> ReconciliationMap:
    """Match placemark records to rendered entities.

    Args:
        placemarks: Placemark leaves in tree order.
        instances: The renderer's entities in collection order.

    Returns:
        Map from placemark geo-key to its matched entities. Placemarks
        sharing a colliding key accumulate under the same entry.
    """
    instances = list(instances)
    pools = _name_pools(instances)
    exact_index = build_entity_index(instances)

    result: ReconciliationMap = {}
    claimed: set[str] = set()
    unmatched = 0

    for record in placemarks:
        candidates = [
            e for e in pools.get(record.name.strip(), [])
            if e.entity_id not in claimed
        ]

        best = None
        if len(candidates) == 1:
            best = candidates[0]
        elif len(candidates) > 1 and record.coordinate is not None:
            best = _nearest(record.coordinate, candidates) or candidates[0]

        if best is not None:
            assigned = [best]
        else:
            assigned = [
                e for e in exact_index.get(record.geo_key, [])
                if e.entity_id not in claimed
            ]

        if not assigned:
            unmatched += 1
            continue

        result.setdefault(record.geo_key, []).extend(assigned)
        claimed.update(e.entity_id for e in assigned)

    logger.debug(
        f"Reconciled {len(result)} placemark keys to {len(claimed)} entities "
        f"({unmatched} placemarks unmatched)"
    )
    return result
