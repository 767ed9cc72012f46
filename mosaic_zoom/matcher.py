"""Greedy tile assignment by CIEDE2000 under per-tile usage caps."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from mosaic_zoom.cells import GridCell, cell_extremity
from mosaic_zoom.color_utils import delta_e_matrix
from mosaic_zoom.errors import NoTilesError
from mosaic_zoom.tiles import TileImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileAssignment:
    cell: GridCell
    tile: TileImage


def usage_cap(
    cell_count: int,
    tile_count: int,
    allow_duplicates: bool,
    max_usage_per_tile: int | None = None,
) -> int:
    """How many cells a single tile may fill."""
    if not allow_duplicates:
        return 1
    if max_usage_per_tile is not None:
        return max_usage_per_tile
    return math.ceil(cell_count / tile_count) + 1


def match_tiles(
    cells: Sequence[GridCell],
    tiles: Sequence[TileImage],
    allow_duplicates: bool = True,
    max_usage_per_tile: int | None = None,
    chunk_size: int = 256,
) -> list[TileAssignment]:
    """Assign the perceptually closest available tile to every cell.

    Cells furthest from neutral grey are matched first, while the whole
    pool is still available. Each tile may be used up to :func:`usage_cap`
    times; once capped it leaves the pool.

    When the pool runs dry with duplicates allowed, usage is reset and the
    full pool is rescanned for the current cell. Without duplicates the first
    pooled tile is used instead.

    Args:
        cells:              Grid cells with their target colours.
        tiles:              Tile pool, in pool order (ties go to the earliest).
        allow_duplicates:   Whether a tile may fill more than one cell.
        max_usage_per_tile: Explicit cap when duplicates are allowed.
        chunk_size:         Cells scored per distance block.

    Returns:
        One assignment per cell, in matching order.
    """
    if not tiles:
        raise NoTilesError()

    n_tiles = len(tiles)
    cap = usage_cap(len(cells), n_tiles, allow_duplicates, max_usage_per_tile)
    order = sorted(
        range(len(cells)),
        key=lambda i: cell_extremity(cells[i].average_color),
        reverse=True,
    )

    tile_lab = np.array([t.average_color for t in tiles], dtype=np.float64)
    cell_lab = np.array([c.average_color for c in cells], dtype=np.float64).reshape(-1, 3)

    logger.info(
        "Matching %d cells against %d tiles (cap=%d, duplicates=%s) …",
        len(cells), n_tiles, cap, allow_duplicates,
    )
    t0 = time.perf_counter()

    usage = np.zeros(n_tiles, dtype=np.int64)
    available = np.ones(n_tiles, dtype=bool)
    assignments: list[TileAssignment] = []
    resets = 0
    fallbacks = 0

    for start in range(0, len(order), chunk_size):
        block_idx = order[start:start + chunk_size]
        dist = delta_e_matrix(cell_lab[block_idx], tile_lab, chunk_size)

        for row, cell_i in enumerate(block_idx):
            if available.any():
                best = int(np.argmin(np.where(available, dist[row], np.inf)))
            elif allow_duplicates:
                resets += 1
                usage[:] = 0
                available[:] = True
                best = int(np.argmin(dist[row]))
            else:
                fallbacks += 1
                best = 0

            assignments.append(TileAssignment(cells[cell_i], tiles[best]))
            usage[best] += 1
            if usage[best] >= cap:
                available[best] = False

    if resets:
        logger.info("Tile pool exhausted %d time(s); usage counters reset", resets)
    if fallbacks:
        logger.warning(
            "No unused tile left for %d cell(s); fell back to the first pooled tile",
            fallbacks,
        )
    logger.info("Matching done  (%.1f s)", time.perf_counter() - t0)
    return assignments
