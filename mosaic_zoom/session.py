"""In-memory sessions: one target, one tile pool, one mosaic each.

Nothing here is persisted. :class:`SessionStore` evicts sessions idle for
longer than its TTL when :meth:`SessionStore.sweep` is called; scheduling the
sweep is left to the caller.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from mosaic_zoom.config import MosaicConfig
from mosaic_zoom.deepzoom import DeepZoomPyramid, DziMetadata
from mosaic_zoom.errors import NoTargetImageError
from mosaic_zoom.image_io import image_dimensions
from mosaic_zoom.tiles import TileImage, process_tile_images

logger = logging.getLogger(__name__)

_DEFAULTS = MosaicConfig()

MIN_DIMENSION = 100


@dataclass(frozen=True)
class UploadSummary:
    added: int
    skipped: int
    total: int


class Session:
    """Mutable state of one user's mosaic workflow.

    ``lock`` is held by uploads and by generation, so the tile pool never
    changes while a mosaic is being built from it.
    """

    def __init__(self, session_id: str | None = None, config: MosaicConfig = _DEFAULTS) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.config = config
        self.lock = threading.RLock()
        self.closed = False
        self.last_access = time.monotonic()

        self.target_image: bytes | None = None
        self.target_size: tuple[int, int] | None = None
        self.desired_size: tuple[int, int] | None = None
        self.tiles: dict[str, TileImage] = {}
        self.mosaic: bytes | None = None
        self.pyramid: DeepZoomPyramid | None = None

    # -- target ---------------------------------------------------------

    def set_target_image(self, data: bytes) -> tuple[int, int]:
        """Store the target; returns its (width, height)."""
        size = image_dimensions(data)
        with self.lock:
            self.target_image = data
            self.target_size = size
            self.clear_dzi_tiles()
        return size

    def set_dimensions(self, width: int, height: int) -> None:
        """Set the output size used for tier tile counts."""
        if width < MIN_DIMENSION or height < MIN_DIMENSION:
            msg = f"Invalid dimensions. Minimum {MIN_DIMENSION}x{MIN_DIMENSION}."
            raise ValueError(msg)
        self.desired_size = (width, height)

    def get_target_image(self) -> bytes:
        if self.target_image is None:
            raise NoTargetImageError()
        return self.target_image

    # -- tiles ----------------------------------------------------------

    def add_tiles(self, blobs: Iterable[bytes]) -> UploadSummary:
        """Process and pool uploaded tile images; bad uploads are skipped."""
        tiles, skipped = process_tile_images(blobs, self.config)
        with self.lock:
            for tile in tiles:
                self.tiles[tile.id] = tile
            total = len(self.tiles)
        return UploadSummary(added=len(tiles), skipped=skipped, total=total)

    def list_tiles(self) -> list[TileImage]:
        return list(self.tiles.values())

    def clear_tiles(self) -> None:
        with self.lock:
            self.tiles.clear()

    # -- mosaic ---------------------------------------------------------

    def commit_mosaic(self, mosaic: bytes, pyramid: DeepZoomPyramid) -> bool:
        """Publish a finished mosaic; refused once the session is closed."""
        with self.lock:
            if self.closed:
                logger.info("Session %s closed; discarding generated mosaic", self.id)
                return False
            self.mosaic = mosaic
            self.pyramid = pyramid
        return True

    @property
    def dzi_metadata(self) -> DziMetadata | None:
        return self.pyramid.metadata if self.pyramid is not None else None

    def get_dzi_tile(self, level: int, x: int, y: int) -> bytes | None:
        if self.pyramid is None:
            return None
        return self.pyramid.get_tile(level, x, y)

    def clear_dzi_tiles(self) -> None:
        with self.lock:
            self.mosaic = None
            self.pyramid = None

    @property
    def nbytes(self) -> int:
        """Bytes held by the target, tile thumbnails, mosaic and pyramid tiles."""
        pyramid = self.pyramid
        total = len(self.target_image or b"") + len(self.mosaic or b"")
        total += sum(len(t.thumbnail) for t in list(self.tiles.values()))
        if pyramid is not None:
            total += pyramid.nbytes
        return total

    def close(self) -> None:
        """Mark closed and drop all buffers; in-flight results are discarded.

        The flag is raised first so a running generation refuses to commit;
        buffers are then dropped under the lock, after any commit that had
        already passed its check.
        """
        self.closed = True
        with self.lock:
            self.target_image = None
            self.mosaic = None
            self.pyramid = None
            self.tiles = {}


class SessionStore:
    """Session registry with time-based eviction."""

    def __init__(self, ttl_seconds: float = 30 * 60, config: MosaicConfig = _DEFAULTS) -> None:
        self.ttl_seconds = ttl_seconds
        self.config = config
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> Session:
        session = Session(config=self.config)
        with self._lock:
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Session | None:
        """Fetch a session and refresh its idle timer."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_access = time.monotonic()
        return session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def sweep(self, now: float | None = None) -> list[str]:
        """Evict sessions idle for longer than the TTL; returns their ids."""
        now = time.monotonic() if now is None else now
        with self._lock:
            expired = [
                sid for sid, s in self._sessions.items()
                if now - s.last_access > self.ttl_seconds
            ]
        for sid in expired:
            self.delete(sid)
            logger.info("Cleaned up expired session: %s", sid)
        return expired

    def stats(self) -> dict[str, float]:
        total_tiles = 0
        total_bytes = 0
        with self._lock:
            sessions = list(self._sessions.values())
        for s in sessions:
            total_tiles += len(s.tiles)
            total_bytes += s.nbytes
        return {
            "session_count": len(self._sessions),
            "total_tiles": total_tiles,
            "total_memory_mb": round(total_bytes / (1024 * 1024), 2),
        }
