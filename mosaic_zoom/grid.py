"""Grid planning: how many cells, and in what cols x rows layout."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from mosaic_zoom.config import TIERS, MosaicConfig, MosaicOptions
from mosaic_zoom.errors import InsufficientTilesError

logger = logging.getLogger(__name__)

_DEFAULTS = MosaicConfig()


@dataclass(frozen=True)
class GridPlan:
    """Final grid layout of a mosaic.

    Attributes:
        tile_count:        Tile count the layout was derived from.
        cols:              Columns after the detail multiplier.
        rows:              Rows after the detail multiplier.
        detail_multiplier: Factor applied to both axes.
    """

    tile_count: int
    cols: int
    rows: int
    detail_multiplier: int = 1

    @property
    def cell_count(self) -> int:
        return self.cols * self.rows


def round_half_up(value: float) -> int:
    """Round halves up; ``round()`` rounds them to even."""
    return math.floor(value + 0.5)


def tile_count_for_tier(
    width: int,
    height: int,
    tier: str,
    config: MosaicConfig = _DEFAULTS,
) -> int:
    """``ceil(pixels / density)`` for the given resolution tier."""
    density = config.tier_density.get(tier)
    if density is None:
        msg = f"Unknown resolution tier '{tier}'. Available: {', '.join(TIERS)}"
        raise ValueError(msg)
    return math.ceil(width * height / density)


def grid_from_tile_count(tile_count: int, aspect_ratio: float) -> tuple[int, int]:
    """Pick (cols, rows) whose product is closest to *tile_count*.

    Starts from the aspect-ratio estimate and scans +/-2 on both axes;
    only strict improvements replace the current best, so ties go to the
    first pair in scan order and the result is never worse than the estimate.
    """
    if tile_count < 1:
        msg = "tile_count must be at least 1"
        raise ValueError(msg)
    if aspect_ratio <= 0:
        msg = "aspect_ratio must be positive"
        raise ValueError(msg)

    cols = max(1, round_half_up(math.sqrt(tile_count * aspect_ratio)))
    rows = max(1, round_half_up(tile_count / cols))

    best_cols, best_rows = cols, rows
    best_diff = abs(cols * rows - tile_count)

    for c in range(max(1, cols - 2), cols + 3):
        for r in range(max(1, rows - 2), rows + 3):
            diff = abs(c * r - tile_count)
            if diff < best_diff:
                best_diff = diff
                best_cols, best_rows = c, r

    return best_cols, best_rows


def effective_detail_multiplier(
    options: MosaicOptions,
    config: MosaicConfig = _DEFAULTS,
) -> int:
    """Requested multiplier, or 2 for the "low" tier when none was requested."""
    if options.detail_multiplier > 1:
        return options.detail_multiplier
    if options.tier == "low" and config.auto_low_detail:
        return 2
    return 1


def plan_grid(
    width: int,
    height: int,
    pool_size: int,
    options: MosaicOptions,
    config: MosaicConfig = _DEFAULTS,
    tile_count: int | None = None,
    tier_size: tuple[int, int] | None = None,
) -> GridPlan:
    """Plan the mosaic grid for a ``width x height`` output.

    The tile count comes from, in order of precedence: the whole pool
    (``use_all_tiles`` with the "high" tier), *tile_count* (e.g. a complexity
    recommendation), ``options.exact_tile_count``, then the tier formula
    applied to *tier_size* (defaults to ``width x height``).
    """
    aspect_ratio = width / height

    if options.use_all_tiles and options.tier == "high":
        count = pool_size
        logger.info("Using ALL %d tiles for maximum quality", count)
    elif tile_count is not None:
        count = tile_count
        logger.info("Using recommended tile count %d", count)
    elif options.exact_tile_count is not None:
        count = options.exact_tile_count
        logger.info("Using exact tile count %d", count)
    else:
        tier_w, tier_h = tier_size or (width, height)
        count = tile_count_for_tier(tier_w, tier_h, options.tier, config)
        logger.info("Tier '%s': %d tiles for %dx%d", options.tier, count, tier_w, tier_h)

    cols, rows = grid_from_tile_count(count, aspect_ratio)
    multiplier = effective_detail_multiplier(options, config)
    plan = GridPlan(
        tile_count=count,
        cols=cols * multiplier,
        rows=rows * multiplier,
        detail_multiplier=multiplier,
    )
    logger.info(
        "Grid %dx%d (%d cells, detail x%d)",
        plan.cols, plan.rows, plan.cell_count, multiplier,
    )
    return plan


def validate_tile_pool(plan: GridPlan, pool_size: int, allow_duplicates: bool) -> None:
    """Fail when a duplicate-free mosaic needs more tiles than the pool has.

    Detail-multiplied grids are exempt: their sub-cells are expected to
    repeat tiles.

    Raises:
        InsufficientTilesError: With the needed and available counts.
    """
    if allow_duplicates or plan.detail_multiplier > 1:
        return
    if pool_size < plan.cell_count:
        raise InsufficientTilesError(needed=plan.cell_count, have=pool_size)


def resolution_requirements(
    width: int,
    height: int,
    config: MosaicConfig = _DEFAULTS,
) -> dict[str, dict[str, int]]:
    """Tile count and base grid for every tier at ``width x height``."""
    aspect_ratio = width / height
    requirements: dict[str, dict[str, int]] = {}
    for tier in TIERS:
        count = tile_count_for_tier(width, height, tier, config)
        cols, rows = grid_from_tile_count(count, aspect_ratio)
        requirements[tier] = {"tiles": count, "cols": cols, "rows": rows}
    return requirements
