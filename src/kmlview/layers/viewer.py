"""Viewer — registry of data sources shown in the 3D view, plus the camera.

Manages the lifecycle of DataSource objects: add, remove (tolerant of
sources it never held) and fitting the camera to a source's extent.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from kmlview.errors import ViewError
from kmlview.layers.layer import DataSource


@dataclass(frozen=True)
class CameraExtent:
    """Geographic rectangle the camera is fitted to, in degrees."""

    west: float
    south: float
    east: float
    north: float

    @property
    def center(self) -> tuple[float, float]:
        return ((self.west + self.east) / 2, (self.south + self.north) / 2)


class Viewer:
    """Holds the active data sources and the current camera extent."""

    def __init__(self) -> None:
        self._data_sources: list[DataSource] = []
        self.camera: CameraExtent | None = None

    @property
    def data_sources(self) -> list[DataSource]:
        return list(self._data_sources)

    def add(self, data_source: DataSource) -> None:
        """Add a data source to the view (no-op if already present)."""
        if any(ds is data_source for ds in self._data_sources):
            return
        self._data_sources.append(data_source)
        logger.debug(f"Viewer: added data source '{data_source.name}'")

    def remove(self, data_source: DataSource | None, destroy: bool = True) -> bool:
        """Remove a data source from the view.

        Args:
            data_source: The source to remove; None or unknown sources are ignored.
            destroy: Release the source's entities and mark it destroyed.

        Returns:
            True if the source was removed, False if the view did not hold it.
        """
        if data_source is None:
            return False
        for i, ds in enumerate(self._data_sources):
            if ds is data_source:
                del self._data_sources[i]
                break
        else:
            return False
        if destroy:
            data_source.entities = []
            data_source.destroyed = True
        logger.debug(f"Viewer: removed data source '{data_source.name}'")
        return True

    async def fly_to(self, data_source: DataSource) -> CameraExtent:
        """Fit the camera to the visible entities of a data source."""
        return self._fit(data_source, visible_only=True)

    async def zoom_to(self, data_source: DataSource) -> CameraExtent:
        """Fit the camera to every positioned entity of a data source."""
        return self._fit(data_source, visible_only=False)

    def _fit(self, data_source: DataSource, visible_only: bool) -> CameraExtent:
        if data_source.destroyed:
            raise ViewError(f"Data source '{data_source.name}' has been destroyed")
        coords = [
            e.coordinate for e in data_source.entities
            if e.coordinate is not None and (e.visible or not visible_only)
        ]
        if not coords:
            raise ViewError(f"Data source '{data_source.name}' has no positioned entities")
        lons = [c[0] for c in coords]
        lats = [c[1] for c in coords]
        self.camera = CameraExtent(west=min(lons), south=min(lats), east=max(lons), north=max(lats))
        return self.camera
