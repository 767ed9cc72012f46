"""Render tile assignments onto the mosaic canvas.

Tiles are prepared in fixed-size batches on a small thread pool and pasted
before the next batch starts, so at most one batch of resized tiles is held
in memory at a time.
"""

from __future__ import annotations

import io
import logging
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from PIL import Image, ImageEnhance

from mosaic_zoom.color_utils import LabColor
from mosaic_zoom.config import MosaicConfig
from mosaic_zoom.errors import ProcessingError
from mosaic_zoom.image_io import resize_cover
from mosaic_zoom.matcher import TileAssignment

logger = logging.getLogger(__name__)

_DEFAULTS = MosaicConfig()


@dataclass
class CompositeResult:
    image: Image.Image
    skipped: int


def apply_tint(
    img: Image.Image,
    target_color: LabColor,
    tile_color: LabColor,
    intensity: float,
    brightness_threshold: float = 0.01,
    chroma_threshold: float = 1.0,
) -> Image.Image:
    """Shift *img* toward *target_color* by *intensity* of the LAB difference.

    Lightness is applied as a brightness factor, chroma as a flat colour
    overlay; either step is skipped when its change would be imperceptible.
    """
    d_l = (target_color.L - tile_color.L) * intensity
    d_a = (target_color.a - tile_color.a) * intensity
    d_b = (target_color.b - tile_color.b) * intensity

    brightness = d_l / 100
    if abs(brightness) > brightness_threshold:
        img = ImageEnhance.Brightness(img).enhance(1 + brightness * 0.5)

    if abs(d_a) > chroma_threshold or abs(d_b) > chroma_threshold:
        tint_rgb = LabColor(50 + d_l * 2, d_a * 2, d_b * 2).to_rgb()
        overlay = Image.new("RGB", img.size, tint_rgb)
        img = Image.blend(img, overlay, intensity)

    return img


def render_tile(
    assignment: TileAssignment,
    tint_intensity: float | None = None,
    config: MosaicConfig = _DEFAULTS,
) -> tuple[Image.Image, tuple[int, int]]:
    """Cover-fit one tile to its cell and optionally tint it.

    Returns:
        The rendered tile and its paste position.

    Raises:
        ProcessingError: The tile thumbnail could not be decoded or resized.
    """
    left, top, width, height = assignment.cell.pixel_box()
    try:
        with Image.open(io.BytesIO(assignment.tile.thumbnail)) as thumb:
            tile = resize_cover(thumb.convert("RGB"), width, height)
    except (OSError, ValueError) as exc:
        msg = f"Failed to render tile {assignment.tile.id}"
        raise ProcessingError(msg) from exc

    if tint_intensity:
        tile = apply_tint(
            tile,
            assignment.cell.average_color,
            assignment.tile.average_color,
            tint_intensity,
            config.tint_brightness_threshold,
            config.tint_chroma_threshold,
        )
    return tile, (left, top)


def composite_mosaic(
    assignments: Sequence[TileAssignment],
    size: tuple[int, int],
    tint_intensity: float | None = None,
    config: MosaicConfig = _DEFAULTS,
) -> CompositeResult:
    """Paste every assignment onto a black ``size`` canvas.

    Args:
        assignments:    Output of :func:`~mosaic_zoom.matcher.match_tiles`.
        size:           (width, height) of the mosaic.
        tint_intensity: Tint strength in [0, 1]; ``None`` or 0 disables tinting.
        config:         Batch size, worker count and tint thresholds.

    Returns:
        The canvas and how many tiles were skipped because they failed to render.
    """
    width, height = size
    canvas = Image.new("RGB", (width, height), (0, 0, 0))
    batch_size = max(1, config.composite_batch_size)
    total = len(assignments)
    skipped = 0

    logger.info("Compositing %d tiles into %dx%d mosaic", total, width, height)
    t0 = time.perf_counter()

    def _render(assignment: TileAssignment) -> tuple[Image.Image, tuple[int, int]] | None:
        try:
            return render_tile(assignment, tint_intensity, config)
        except ProcessingError as exc:
            logger.warning("%s: %s", exc, exc.__cause__)
            return None

    with ThreadPoolExecutor(max_workers=max(1, config.workers)) as pool:
        for start in range(0, total, batch_size):
            batch = assignments[start:start + batch_size]
            for rendered in pool.map(_render, batch):
                if rendered is None:
                    skipped += 1
                    continue
                tile, position = rendered
                canvas.paste(tile, position)
            done = min(start + batch_size, total)
            if done == total or (done // batch_size) % 25 == 0:
                logger.debug("Composited %d/%d tiles", done, total)

    logger.info(
        "Mosaic composited  (%d skipped, %.1f s)", skipped, time.perf_counter() - t0,
    )
    return CompositeResult(image=canvas, skipped=skipped)
