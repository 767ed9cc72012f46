"""Deep Zoom (DZI) pyramid built in memory from a finished mosaic.

Level ``max_level`` is the full-resolution mosaic; every level below halves
it, down to a single pixel at level 0. Each level is sliced into square tiles
that overlap their neighbours by ``overlap`` pixels on interior edges, so the
viewer can stitch them without seams.

Every level is generated eagerly when the pyramid is built. This costs more
build time and memory than deferring the deep levels, but any tile request
afterwards is a plain dictionary lookup.
"""

from __future__ import annotations

import logging
import math
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from mosaic_zoom.errors import PyramidTileError
from mosaic_zoom.image_io import encode_image

logger = logging.getLogger(__name__)

DZI_NAMESPACE = "http://schemas.microsoft.com/deepzoom/2008"

_TILE_NAME = re.compile(r"^(\d+)_(\d+)\.")

TileKey = tuple[int, int, int]


@dataclass(frozen=True)
class DziMetadata:
    width: int
    height: int
    tile_size: int = 256
    overlap: int = 1
    format: str = "jpeg"
    max_level: int = 0

    def descriptor(self) -> str:
        """The ``.dzi`` XML document for this pyramid."""
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            f'<Image xmlns="{DZI_NAMESPACE}"\n'
            f'  Format="{self.format}" Overlap="{self.overlap}" TileSize="{self.tile_size}">\n'
            f'  <Size Width="{self.width}" Height="{self.height}"/>\n'
            "</Image>"
        )


def compute_max_level(width: int, height: int) -> int:
    """Smallest level whose ``2**level`` covers the longest side."""
    longest = max(width, height)
    if longest < 1:
        msg = "Image dimensions must be positive"
        raise ValueError(msg)
    return math.ceil(math.log2(longest))


def level_dimensions(width: int, height: int, level: int, max_level: int) -> tuple[int, int]:
    scale = 2 ** (max_level - level)
    return math.ceil(width / scale), math.ceil(height / scale)


def tile_grid(level_width: int, level_height: int, tile_size: int = 256) -> tuple[int, int]:
    """(columns, rows) of tiles covering one level."""
    return math.ceil(level_width / tile_size), math.ceil(level_height / tile_size)


def tile_bounds(
    tile_x: int,
    tile_y: int,
    level_width: int,
    level_height: int,
    tile_size: int = 256,
    overlap: int = 1,
) -> tuple[int, int, int, int]:
    """(left, top, right, bottom) crop box; overlap only on interior edges."""
    left = tile_x * tile_size - overlap if tile_x > 0 else 0
    top = tile_y * tile_size - overlap if tile_y > 0 else 0
    right = min(level_width, (tile_x + 1) * tile_size + overlap)
    bottom = min(level_height, (tile_y + 1) * tile_size + overlap)
    return left, top, right, bottom


def parse_tile_path(path: str) -> TileKey:
    """Parse ``"{level}/{x}_{y}.{ext}"`` into ``(level, x, y)``.

    Raises:
        ValueError: The path does not address a tile.
    """
    parts = path.strip("/").split("/")
    level_part = parts[-2] if len(parts) >= 2 else ""
    match = _TILE_NAME.match(parts[-1])
    if not level_part.isdigit() or match is None:
        msg = f"Invalid tile path '{path}'"
        raise ValueError(msg)
    return int(level_part), int(match.group(1)), int(match.group(2))


class DeepZoomPyramid:
    """In-memory tile store for one mosaic, keyed by ``(level, x, y)``."""

    def __init__(
        self,
        tile_size: int = 256,
        overlap: int = 1,
        fmt: str = "jpeg",
        quality: int = 90,
        workers: int = 4,
    ) -> None:
        self.tile_size = tile_size
        self.overlap = overlap
        self.format = fmt
        self.quality = quality
        self.workers = max(1, workers)
        self.metadata: DziMetadata | None = None
        self.holes = 0
        self._tiles: dict[TileKey, bytes] = {}

    @property
    def tile_count(self) -> int:
        return len(self._tiles)

    @property
    def nbytes(self) -> int:
        """Total encoded size of all stored tiles."""
        return sum(len(data) for data in self._tiles.values())

    def keys(self) -> list[TileKey]:
        return sorted(self._tiles)

    def clear(self) -> None:
        self._tiles.clear()
        self.metadata = None
        self.holes = 0

    def build(self, mosaic: Image.Image) -> DziMetadata:
        """Regenerate every level of the pyramid from *mosaic*."""
        self.clear()
        width, height = mosaic.size
        max_level = compute_max_level(width, height)
        self.metadata = DziMetadata(
            width=width,
            height=height,
            tile_size=self.tile_size,
            overlap=self.overlap,
            format=self.format,
            max_level=max_level,
        )

        logger.info("Generating DZI pyramid for %dx%d (%d levels) …", width, height, max_level + 1)
        t0 = time.perf_counter()

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            for level in range(max_level, -1, -1):
                self._build_level(pool, mosaic, level, max_level)

        logger.info(
            "DZI pyramid generated: %d tiles, %d holes  (%.1f s)",
            len(self._tiles), self.holes, time.perf_counter() - t0,
        )
        return self.metadata

    def _build_level(
        self,
        pool: ThreadPoolExecutor,
        mosaic: Image.Image,
        level: int,
        max_level: int,
    ) -> None:
        level_w, level_h = level_dimensions(mosaic.width, mosaic.height, level, max_level)
        if (level_w, level_h) == mosaic.size:
            level_img = mosaic
        else:
            level_img = mosaic.resize((level_w, level_h), Image.LANCZOS)

        cols, rows = tile_grid(level_w, level_h, self.tile_size)
        logger.debug("Level %d: %dx%d, %dx%d tiles", level, level_w, level_h, cols, rows)

        coords = [(x, y) for y in range(rows) for x in range(cols)]

        def _slice(xy: tuple[int, int]) -> tuple[TileKey, bytes | None]:
            key = (level, xy[0], xy[1])
            try:
                return key, self._render_tile(level_img, key)
            except PyramidTileError as exc:
                logger.error("%s: %s", exc, exc.__cause__)
                return key, None

        for key, data in pool.map(_slice, coords):
            if data is None:
                self.holes += 1
            else:
                self._tiles[key] = data

    def _render_tile(self, level_img: Image.Image, key: TileKey) -> bytes:
        _, x, y = key
        box = tile_bounds(x, y, level_img.width, level_img.height, self.tile_size, self.overlap)
        try:
            return encode_image(level_img.crop(box), self.format, self.quality)
        except (OSError, ValueError) as exc:
            msg = f"Failed to generate tile {key[0]}/{x}_{y}"
            raise PyramidTileError(msg) from exc

    def get_tile(self, level: int, x: int, y: int) -> bytes | None:
        return self._tiles.get((level, x, y))

    def get_tile_by_path(self, path: str) -> bytes | None:
        """Look up a tile by its ``"{level}/{x}_{y}.{ext}"`` path."""
        return self.get_tile(*parse_tile_path(path))

    def descriptor(self) -> str:
        if self.metadata is None:
            msg = "Pyramid has not been built"
            raise RuntimeError(msg)
        return self.metadata.descriptor()

    def save(self, output_dir: str | Path, name: str = "mosaic") -> Path:
        """Write ``{name}.dzi`` and ``{name}_files/{level}/{x}_{y}.{ext}``."""
        output_dir = Path(output_dir)
        dzi_path = output_dir / f"{name}.dzi"
        files_dir = output_dir / f"{name}_files"
        output_dir.mkdir(parents=True, exist_ok=True)
        dzi_path.write_text(self.descriptor(), encoding="utf-8")
        for (level, x, y), data in self._tiles.items():
            level_dir = files_dir / str(level)
            level_dir.mkdir(parents=True, exist_ok=True)
            (level_dir / f"{x}_{y}.{self.format}").write_bytes(data)
        return dzi_path
