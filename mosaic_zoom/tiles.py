"""Tile pool entries: average colour plus a compact thumbnail."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
from PIL import Image

from mosaic_zoom.color_utils import LabColor
from mosaic_zoom.config import MosaicConfig
from mosaic_zoom.errors import ProcessingError
from mosaic_zoom.image_io import decode_image, encode_image, resize_cover

logger = logging.getLogger(__name__)

_DEFAULTS = MosaicConfig()


@dataclass(frozen=True)
class TileImage:
    """One uploaded tile. Immutable once created.

    Attributes:
        id:            Unique identifier (uuid4 hex).
        thumbnail:     Square JPEG thumbnail, resized again when compositing.
        average_color: Mean colour of the original upload.
        width:         Thumbnail width.
        height:        Thumbnail height.
    """

    id: str
    thumbnail: bytes
    average_color: LabColor
    width: int
    height: int


def average_color(img: Image.Image, sample_side: int = 50) -> LabColor:
    """Mean RGB of *img* resampled to ``sample_side`` squared, as LAB."""
    small = img.convert("RGB").resize((sample_side, sample_side), Image.LANCZOS)
    mean = np.asarray(small, dtype=np.float64).reshape(-1, 3).mean(axis=0)
    return LabColor.from_rgb(*mean)


def process_tile_image(data: bytes, config: MosaicConfig = _DEFAULTS) -> TileImage:
    """Turn an uploaded image into a :class:`TileImage`.

    Raises:
        ProcessingError: The upload could not be decoded.
    """
    try:
        img = decode_image(data)
    except (OSError, ValueError) as exc:
        msg = "Failed to process image. The format may not be supported."
        raise ProcessingError(msg) from exc

    side = config.tile_thumbnail_side
    thumb = resize_cover(img, side, side)
    return TileImage(
        id=uuid.uuid4().hex,
        thumbnail=encode_image(thumb, "jpeg", config.tile_thumbnail_quality),
        average_color=average_color(img, config.tile_average_side),
        width=side,
        height=side,
    )


def process_tile_images(
    blobs: Iterable[bytes],
    config: MosaicConfig = _DEFAULTS,
) -> tuple[list[TileImage], int]:
    """Process many uploads; undecodable ones are skipped.

    Returns:
        The processed tiles and the number of skipped uploads.
    """
    tiles: list[TileImage] = []
    skipped = 0
    for idx, data in enumerate(blobs):
        try:
            tiles.append(process_tile_image(data, config))
        except ProcessingError as exc:
            skipped += 1
            logger.warning("Skipping tile upload #%d: %s", idx, exc)
    logger.info("Processed %d tiles (%d skipped)", len(tiles), skipped)
    return tiles, skipped
