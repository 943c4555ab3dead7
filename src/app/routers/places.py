"""Places panel API — load a KML document and drive the folder/placemark toggles.

The ViewerSession lives on ``app.state``; every endpoint operates on it.
Tree mutations return the fresh tree snapshot so the client can re-render
the panel in one round trip.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger
from pydantic import BaseModel, Field

from app.config import settings
from kmlview.errors import KmlViewError, NoDocumentError
from kmlview.session import ViewerSession

router = APIRouter(prefix="/api/places", tags=["places"])


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class LoadRequest(BaseModel):
    """Raw KML content to load."""
    file_name: str = "document.kml"
    content: str


class LoadResponse(BaseModel):
    """Summary of a successful load."""
    file_name: str
    info: str
    entities: int
    mapped_placemarks: int
    status: str


class CheckRequest(BaseModel):
    checked: bool


class FilterRequest(BaseModel):
    text: str = ""


class HideLabelsRequest(BaseModel):
    hide: bool


class TreeRow(BaseModel):
    """One rendered row of the places tree, linked to the others by id."""
    id: int
    parent_id: Optional[int] = None
    depth: int
    name: str
    kind: str
    checked: bool
    indeterminate: bool
    expanded: bool
    meta: str
    toggle_disabled: bool
    children: list[int] = Field(default_factory=list)


class TreeSnapshot(BaseModel):
    """The whole places panel; ``nodes`` are the rendered rows in display order."""
    loaded: bool
    file_name: Optional[str] = None
    info: str = ""
    summary: str = ""
    filter_text: str = ""
    hide_labels: bool = False
    status: str = ""
    root_id: Optional[int] = None
    nodes: list[TreeRow] = Field(default_factory=list)


class StatusResponse(BaseModel):
    status: str
    mode: Optional[str] = None
    shown_entities: int = 0
    total_entities: int = 0
    mapped_placemarks: int = 0


class CameraResponse(BaseModel):
    west: float
    south: float
    east: float
    north: float


# ---------------------------------------------------------------------------
# Session access
# ---------------------------------------------------------------------------

def get_session(request: Request) -> ViewerSession:
    """Return the app's ViewerSession, creating it on first use."""
    state = request.app.state
    session = getattr(state, "viewer_session", None)
    if session is None:
        session = ViewerSession(
            hide_labels=settings.hide_labels,
            clamp_to_ground=settings.clamp_to_ground,
        )
        state.viewer_session = session
    return session


def _get_load_lock(request: Request) -> asyncio.Lock:
    state = request.app.state
    lock = getattr(state, "load_lock", None)
    if lock is None:
        lock = asyncio.Lock()
        state.load_lock = lock
    return lock


def _mutate(session: ViewerSession, action: Callable[[], object]) -> TreeSnapshot:
    """Run a tree intent and return the new snapshot, mapping errors to HTTP."""
    try:
        action()
    except NoDocumentError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]) if e.args else "Node not found")
    return TreeSnapshot(**session.snapshot())


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

@router.post("/load", response_model=LoadResponse)
async def load_document(
    body: LoadRequest,
    request: Request,
    session: ViewerSession = Depends(get_session),
):
    """Load a KML document, replacing the current one on success.

    A second load while one is in flight is rejected rather than queued.
    Requests declaring an oversized body are turned away by the app's
    size middleware before the body is read; this check covers the rest.
    """
    if len(body.content.encode("utf-8")) > settings.max_document_bytes:
        raise HTTPException(status_code=413, detail="KML document too large")

    lock = _get_load_lock(request)
    if lock.locked():
        raise HTTPException(status_code=409, detail="A load is already in progress")

    async with lock:
        try:
            doc = await session.load_document(body.file_name, body.content)
        except KmlViewError as e:
            logger.warning(f"Load rejected: {e}")
            raise HTTPException(status_code=422, detail=str(e))

    return LoadResponse(
        file_name=doc.file_name,
        info=doc.info,
        entities=len(doc.data_source.entities),
        mapped_placemarks=len(doc.mapping),
        status=session.status,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get("/tree", response_model=TreeSnapshot)
async def get_tree(session: ViewerSession = Depends(get_session)):
    """Current places tree, filtered by the current filter text."""
    return TreeSnapshot(**session.snapshot())


@router.get("/status", response_model=StatusResponse)
async def get_status(session: ViewerSession = Depends(get_session)):
    report = session.last_report
    if report is None:
        return StatusResponse(status=session.status)
    return StatusResponse(
        status=session.status,
        mode=report.mode.value,
        shown_entities=report.shown_entities,
        total_entities=report.total_entities,
        mapped_placemarks=report.mapped_keys,
    )


# ---------------------------------------------------------------------------
# Tree intents
# ---------------------------------------------------------------------------

@router.post("/nodes/{node_id}/expand", response_model=TreeSnapshot)
async def toggle_expand(node_id: int, session: ViewerSession = Depends(get_session)):
    return _mutate(session, lambda: session.toggle_expand(node_id))


@router.post("/nodes/{node_id}/check", response_model=TreeSnapshot)
async def toggle_checked(
    node_id: int,
    body: CheckRequest,
    session: ViewerSession = Depends(get_session),
):
    """Check or uncheck a node and its whole subtree."""
    return _mutate(session, lambda: session.toggle_checked(node_id, body.checked))


@router.post("/filter", response_model=TreeSnapshot)
async def set_filter(body: FilterRequest, session: ViewerSession = Depends(get_session)):
    """Filter which tree rows are shown; entity visibility is unaffected."""
    return _mutate(session, lambda: session.set_filter_text(body.text))


@router.post("/check-all", response_model=TreeSnapshot)
async def check_all(session: ViewerSession = Depends(get_session)):
    return _mutate(session, session.check_all)


@router.post("/uncheck-all", response_model=TreeSnapshot)
async def uncheck_all(session: ViewerSession = Depends(get_session)):
    return _mutate(session, session.uncheck_all)


@router.post("/expand-all", response_model=TreeSnapshot)
async def expand_all(session: ViewerSession = Depends(get_session)):
    return _mutate(session, session.expand_all)


@router.post("/collapse-all", response_model=TreeSnapshot)
async def collapse_all(session: ViewerSession = Depends(get_session)):
    return _mutate(session, session.collapse_all)


@router.post("/hide-labels", response_model=TreeSnapshot)
async def set_hide_labels(body: HideLabelsRequest, session: ViewerSession = Depends(get_session)):
    session.set_hide_labels(body.hide)
    return TreeSnapshot(**session.snapshot())


@router.post("/zoom", response_model=CameraResponse)
async def zoom_to(session: ViewerSession = Depends(get_session)):
    """Fit the camera to the loaded document."""
    extent = await session.zoom_to()
    if extent is None:
        raise HTTPException(status_code=404, detail="Nothing to zoom to")
    return CameraResponse(
        west=extent.west, south=extent.south, east=extent.east, north=extent.north,
    )
