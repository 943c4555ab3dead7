"""Visibility projector — apply places-tree toggles to rendered entities.

The projection never hides everything because of a mapping gap: with no
reconciliation map, or before the user has touched a toggle, every entity
is shown. Only after the first interaction does the tree become
authoritative, and entities no enabled placemark maps to are hidden.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from loguru import logger

from kmlview.layers.layer import RenderableInstance
from kmlview.layers.reconcile import ReconciliationMap
from kmlview.layers.toggles import get_effective_checked
from kmlview.layers.tree import PlaceTree


class ProjectionMode(str, Enum):
    UNMAPPED = "unmapped"
    PERMISSIVE = "permissive"
    AUTHORITATIVE = "authoritative"


@dataclass
class VisibilityReport:
    """Outcome of one projection pass."""

    mode: ProjectionMode
    enabled_keys: int
    mapped_keys: int
    total_entities: int
    shown_entities: int

    @property
    def status(self) -> str:
        if self.mode is ProjectionMode.UNMAPPED:
            return (
                "Showing all entities (no placemark mapping yet). "
                f"Entities: {self.total_entities:,}"
            )
        if self.mode is ProjectionMode.PERMISSIVE:
            return f"Ready. Entities: {self.total_entities:,} • Mapped placemarks: {self.mapped_keys:,}"
        return (
            f"Toggles applied. Showing {self.enabled_keys:,} placemarks • "
            f"Mapped placemarks: {self.mapped_keys:,} • Entities: {self.total_entities:,}"
        )


def enabled_keys(tree: PlaceTree) -> set[str]:
    """Geo-keys of placemark leaves that are effectively checked."""
    keys: set[str] = set()
    for node in tree.placemarks():
        if get_effective_checked(tree, node.id):
            keys.update(node.geo_keys)
    return keys


def apply_label_visibility(instances: Sequence[RenderableInstance], hide_labels: bool) -> None:
    """Show or hide labels and markers without touching geometry visibility."""
    for entity in instances:
        entity.label_visible = not hide_labels
        entity.marker_visible = not hide_labels


def project_visibility(
    tree: PlaceTree,
    mapping: ReconciliationMap,
    instances: Sequence[RenderableInstance],
    *,
    user_has_interacted: bool,
    hide_labels: bool = False,
) -> VisibilityReport:
    """Set ``visible`` and label flags on every entity from the current toggles.

    Args:
        tree: Places tree holding the toggle state.
        mapping: Placemark geo-key to entities, from ``reconcile``.
        instances: Every entity in the current data source.
        user_has_interacted: Whether any toggle has been used since load.
        hide_labels: Hide labels/markers on every entity.

    Returns:
        VisibilityReport describing which branch ran and the counts.
    """
    enabled = enabled_keys(tree)

    if not mapping:
        mode = ProjectionMode.UNMAPPED
    elif not user_has_interacted:
        mode = ProjectionMode.PERMISSIVE
    else:
        mode = ProjectionMode.AUTHORITATIVE

    if mode is ProjectionMode.AUTHORITATIVE:
        for entity in instances:
            entity.visible = False
        for key in enabled:
            for entity in mapping.get(key, ()):
                entity.visible = True
    else:
        for entity in instances:
            entity.visible = True

    apply_label_visibility(instances, hide_labels)

    report = VisibilityReport(
        mode=mode,
        enabled_keys=len(enabled),
        mapped_keys=len(mapping),
        total_entities=len(instances),
        shown_entities=sum(1 for e in instances if e.visible),
    )
    logger.debug(
        f"Visibility ({mode.value}): {report.shown_entities}/{report.total_entities} entities shown"
    )
    return report
