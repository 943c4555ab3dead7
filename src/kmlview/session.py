"""Viewer session — the single owner of the currently loaded document.

A ViewerSession holds the renderer, the view, the label preference and
the current DocumentSession (tree, entity data source, reconciliation
map, filter text, interaction flag). Every presentation-layer operation
is a method here. Loading builds a complete new DocumentSession and only
swaps it in once parsing and rendering have both succeeded, so a failed
load leaves the previous document untouched.

Loads are not re-entrant; callers must serialise them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from kmlview.errors import DocumentReadError, KmlViewError, NoDocumentError, ViewError
from kmlview.layers import toggles
from kmlview.layers.exporters.snapshot import export_rows
from kmlview.layers.layer import DataSource
from kmlview.layers.parsers.kml import parse_kml_document
from kmlview.layers.reconcile import ReconciliationMap, placemark_records, reconcile
from kmlview.layers.renderable import KmlRenderer
from kmlview.layers.tree import FeatureNode, PlaceTree, build_tree
from kmlview.layers.viewer import CameraExtent, Viewer
from kmlview.layers.visibility import VisibilityReport, project_visibility


@dataclass
class DocumentSession:
    """Everything derived from one loaded document."""

    file_name: str
    tree: PlaceTree
    data_source: DataSource
    mapping: ReconciliationMap = field(default_factory=dict)
    filter_text: str = ""
    user_has_interacted: bool = False

    @property
    def summary(self) -> str:
        folders, placemarks = self.tree.totals()
        return f"{folders:,} folders • {placemarks:,} placemarks"

    @property
    def info(self) -> str:
        return f"{self.file_name} • {self.summary}"


class ViewerSession:
    """Current document plus the renderer and view it is shown in."""

    def __init__(
        self,
        renderer: KmlRenderer | None = None,
        viewer: Viewer | None = None,
        *,
        hide_labels: bool = False,
        clamp_to_ground: bool = True,
    ) -> None:
        self.renderer = renderer or KmlRenderer()
        self.viewer = viewer or Viewer()
        self.hide_labels = hide_labels
        self.clamp_to_ground = clamp_to_ground
        self.document: DocumentSession | None = None
        self.last_report: VisibilityReport | None = None
        self.status = "Ready. Load a KML to begin."

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_path(self, path: str | Path) -> DocumentSession:
        """Read a KML file from disk and load it."""
        path = Path(path)
        self.status = "Reading KML…"
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.status = f"Load failed: {e}"
            raise DocumentReadError(f"Could not read {path.name}: {e}") from e
        return await self.load_document(path.name, content)

    async def load_document(self, file_name: str, content: str) -> DocumentSession:
        """Parse, render and install a new document.

        Raises:
            DocumentParseError: Malformed XML.
            StructuralAbsenceError: No Document or Folder root.
            RenderLoadError: The renderer rejected the content.
        """
        logger.info(f"Loading KML: {file_name} ({len(content):,} chars)")
        try:
            tree = build_tree(parse_kml_document(content))
            self.status = "Loading into 3D viewer…"
            data_source = await self.renderer.load(
                content, name=file_name, clamp_to_ground=self.clamp_to_ground,
            )
        except KmlViewError as e:
            self.status = f"Load failed: {e}"
            logger.warning(f"Load failed for {file_name}: {e}")
            raise

        previous = self.document
        if previous is not None:
            self._retire(previous.data_source)

        self.viewer.add(data_source)
        document = DocumentSession(file_name=file_name, tree=tree, data_source=data_source)
        document.mapping = reconcile(placemark_records(tree), data_source.entities)
        self.document = document
        logger.info(
            f"Loaded {document.info} • {len(data_source.entities):,} entities • "
            f"{len(document.mapping):,} mapped placemarks"
        )

        self.apply_visibility()
        await self._fit_camera(data_source)
        self.status = "Ready. Use the Places tree to toggle layers."
        return document

    def _retire(self, data_source: DataSource) -> None:
        """Remove the previous data source; failures never abort a load."""
        try:
            self.viewer.remove(data_source, destroy=True)
        except Exception as e:
            logger.warning(f"Failed to remove previous data source: {e}")

    async def _fit_camera(self, data_source: DataSource) -> CameraExtent | None:
        try:
            return await self.viewer.fly_to(data_source)
        except ViewError:
            try:
                return await self.viewer.zoom_to(data_source)
            except ViewError as e:
                logger.debug(f"Camera fit skipped: {e}")
                return None

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def rebuild_mapping(self) -> ReconciliationMap:
        doc = self._require_document()
        doc.mapping = reconcile(placemark_records(doc.tree), doc.data_source.entities)
        return doc.mapping

    def apply_visibility(self) -> VisibilityReport | None:
        """Project the current toggles onto the current entities."""
        doc = self.document
        if doc is None:
            return None
        if not doc.mapping:
            self.rebuild_mapping()
        report = project_visibility(
            doc.tree,
            doc.mapping,
            doc.data_source.entities,
            user_has_interacted=doc.user_has_interacted,
            hide_labels=self.hide_labels,
        )
        self.last_report = report
        self.status = report.status
        return report

    # ------------------------------------------------------------------
    # Presentation-layer intents
    # ------------------------------------------------------------------

    def _require_document(self) -> DocumentSession:
        if self.document is None:
            raise NoDocumentError("No KML loaded")
        return self.document

    def _require_node(self, node_id: int) -> FeatureNode:
        node = self._require_document().tree.get(node_id)
        if node is None:
            raise KeyError(f"Node not found: {node_id}")
        return node

    def toggle_expand(self, node_id: int) -> bool:
        self._require_node(node_id)
        return toggles.toggle_expand(self.document.tree, node_id)

    def toggle_checked(self, node_id: int, checked: bool) -> VisibilityReport | None:
        """Check or uncheck a subtree and re-project visibility.

        Raises:
            NoDocumentError: Nothing is loaded.
            KeyError: The node id is not in the current tree.
        """
        self._require_node(node_id)
        doc = self.document
        toggles.toggle_checked(doc.tree, node_id, checked)
        doc.user_has_interacted = True
        return self.apply_visibility()

    def set_filter_text(self, text: str) -> None:
        self._require_document().filter_text = text or ""

    def check_all(self) -> VisibilityReport | None:
        doc = self._require_document()
        toggles.check_all(doc.tree)
        doc.user_has_interacted = True
        return self.apply_visibility()

    def uncheck_all(self) -> VisibilityReport | None:
        doc = self._require_document()
        toggles.uncheck_all(doc.tree)
        doc.user_has_interacted = True
        return self.apply_visibility()

    def expand_all(self) -> None:
        toggles.expand_all(self._require_document().tree)

    def collapse_all(self) -> None:
        toggles.collapse_all(self._require_document().tree)

    def set_hide_labels(self, hide: bool) -> VisibilityReport | None:
        self.hide_labels = hide
        return self.apply_visibility()

    async def zoom_to(self) -> CameraExtent | None:
        """Fit the camera to the whole current document (best effort)."""
        doc = self.document
        if doc is None:
            return None
        try:
            return await self.viewer.zoom_to(doc.data_source)
        except ViewError as e:
            logger.debug(f"Zoom skipped: {e}")
            return None

    def snapshot(self) -> dict:
        """Read-only view of the session for rendering the places panel.

        ``nodes`` are the rendered tree rows in display order (see
        ``export_rows``); ``root_id`` is None when nothing is rendered.
        """
        doc = self.document
        if doc is None:
            return {
                "loaded": False,
                "file_name": None,
                "info": "",
                "summary": "",
                "filter_text": "",
                "hide_labels": self.hide_labels,
                "status": self.status,
                "root_id": None,
                "nodes": [],
            }
        rows = export_rows(doc.tree, doc.filter_text)
        return {
            "loaded": True,
            "file_name": doc.file_name,
            "info": doc.info,
            "summary": doc.summary,
            "filter_text": doc.filter_text,
            "hide_labels": self.hide_labels,
            "status": self.status,
            "root_id": rows[0]["id"] if rows else None,
            "nodes": rows,
        }
