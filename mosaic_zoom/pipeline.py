"""End-to-end generation: plan → sample → match → composite → pyramid."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from mosaic_zoom.analyzer import analyze_image
from mosaic_zoom.cells import analyze_target_cells
from mosaic_zoom.compositor import composite_mosaic
from mosaic_zoom.config import MosaicConfig, MosaicOptions
from mosaic_zoom.deepzoom import DeepZoomPyramid, DziMetadata
from mosaic_zoom.errors import GenerationCancelledError, NoTilesError
from mosaic_zoom.grid import GridPlan, plan_grid, validate_tile_pool
from mosaic_zoom.image_io import decode_image, encode_image, fit_within
from mosaic_zoom.matcher import match_tiles
from mosaic_zoom.session import Session

logger = logging.getLogger(__name__)

_DEFAULTS = MosaicConfig()


@dataclass(frozen=True)
class MosaicResult:
    mosaic_bytes: bytes
    dzi_metadata: DziMetadata
    grid: GridPlan
    skipped_tiles: int
    pyramid_holes: int


def generate_mosaic(
    session: Session,
    options: MosaicOptions,
    config: MosaicConfig = _DEFAULTS,
) -> MosaicResult:
    """Build a mosaic and its Deep Zoom pyramid from *session*'s inputs.

    All preconditions are checked before any sampling or compositing. The
    result is published to the session only once everything succeeded.

    Raises:
        NoTargetImageError: No target uploaded.
        NoTilesError: The tile pool is empty.
        InsufficientTilesError: Duplicates are off and the pool is too small.
        GenerationCancelledError: The session was closed mid-generation.
    """
    with session.lock:
        target_bytes = session.get_target_image()
        tiles = session.list_tiles()
        if not tiles:
            raise NoTilesError()

        t_total = time.perf_counter()
        target = fit_within(decode_image(target_bytes), config.max_output_side)
        width, height = target.size
        if target.size != session.target_size:
            logger.info("Output limited to %dx%d", width, height)

        tile_count = None
        if options.use_recommended:
            analysis = analyze_image(target)
            tile_count = analysis.recommended_tiles[options.tier]
            logger.info("Complexity %d → %d tiles", analysis.complexity, tile_count)

        # tier counts follow the chosen or uploaded size, not the capped canvas
        plan = plan_grid(
            width, height, len(tiles), options, config,
            tile_count=tile_count,
            tier_size=session.desired_size or session.target_size,
        )
        validate_tile_pool(plan, len(tiles), options.allow_duplicates)

        cells = analyze_target_cells(target, plan.cols, plan.rows, config.samples_per_cell)
        assignments = match_tiles(
            cells,
            tiles,
            allow_duplicates=options.allow_duplicates,
            max_usage_per_tile=options.max_usage_per_tile,
            chunk_size=config.match_chunk_size,
        )
        composite = composite_mosaic(
            assignments,
            (width, height),
            tint_intensity=options.tint_intensity if options.allow_tinting else None,
            config=config,
        )
        mosaic_bytes = encode_image(composite.image, "jpeg", config.mosaic_quality)

        pyramid = DeepZoomPyramid(
            tile_size=config.dzi_tile_size,
            overlap=config.dzi_overlap,
            fmt=config.dzi_format,
            quality=config.dzi_quality,
            workers=config.workers,
        )
        metadata = pyramid.build(composite.image)

        if not session.commit_mosaic(mosaic_bytes, pyramid):
            raise GenerationCancelledError(f"Session {session.id} was closed")

    logger.info(
        "Mosaic ready: %dx%d, %d cells, %d bytes  (%.1f s)",
        width, height, plan.cell_count, len(mosaic_bytes), time.perf_counter() - t_total,
    )
    return MosaicResult(
        mosaic_bytes=mosaic_bytes,
        dzi_metadata=metadata,
        grid=plan,
        skipped_tiles=composite.skipped,
        pyramid_holes=pyramid.holes,
    )
