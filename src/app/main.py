"""KMLVIEW - KML places viewer.

Main FastAPI application.
"""

import asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from loguru import logger

from app.config import settings
from app.routers import places_router
from kmlview import __version__
from kmlview.session import ViewerSession


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("=" * 60)
    logger.info(f"  {settings.app_name} v{__version__} - INITIALIZING")
    logger.info("=" * 60)

    app.state.viewer_session = ViewerSession(
        hide_labels=settings.hide_labels,
        clamp_to_ground=settings.clamp_to_ground,
    )
    app.state.load_lock = asyncio.Lock()
    logger.info(
        f"Viewer session ready (clamp_to_ground={settings.clamp_to_ground}, "
        f"hide_labels={settings.hide_labels})"
    )

    yield

    session = app.state.viewer_session
    if session.document is not None:
        session.viewer.remove(session.document.data_source, destroy=True)
    logger.info(f"{settings.app_name} shutting down...")


# Create FastAPI app
app = FastAPI(
    title="KMLVIEW",
    description="KML places viewer with per-folder visibility toggles",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(places_router)


@app.middleware("http")
async def limit_load_size(request: Request, call_next):
    """Reject oversized KML loads from their Content-Length, before the body is read."""
    if request.method == "POST" and request.url.path == f"{places_router.prefix}/load":
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > settings.max_document_bytes:
            logger.warning(f"Rejected load request of {int(length):,} bytes")
            return JSONResponse(status_code=413, content={"detail": "KML document too large"})
    return await call_next(request)


@app.get("/", response_class=HTMLResponse)
async def root():
    return HTMLResponse(
        content=f"""
        <html>
            <head><title>{settings.app_name}</title></head>
            <body style="background: #0b1220; color: #e2e8f0; font-family: monospace;">
                <h1>{settings.app_name} v{__version__}</h1>
                <p>Places API at /api/places. Load a KML to begin.</p>
            </body>
        </html>
        """
    )


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Console entry point."""
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    run()
