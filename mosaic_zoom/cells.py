"""Target image sampling: one average colour per grid cell."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numpy as np
from PIL import Image

from mosaic_zoom.color_utils import LabColor, rgb_to_lab

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridCell:
    """A rectangle of the output mosaic.

    ``x``/``y``/``width``/``height`` are the exact floating-point geometry;
    ``bounds`` is the integer ``(left, top, right, bottom)`` span it paints.
    """

    x: float
    y: float
    width: float
    height: float
    average_color: LabColor
    bounds: tuple[int, int, int, int]

    def pixel_box(self) -> tuple[int, int, int, int]:
        """(left, top, width, height) of the painted span, at least 1x1."""
        left, top, right, bottom = self.bounds
        return left, top, max(1, right - left), max(1, bottom - top)


def cell_bounds(
    col: int,
    row: int,
    cols: int,
    rows: int,
    width: int,
    height: int,
) -> tuple[int, int, int, int]:
    """Integer span of cell (col, row); neighbours share edges exactly."""
    return (
        col * width // cols,
        row * height // rows,
        (col + 1) * width // cols,
        (row + 1) * height // rows,
    )


def cell_extremity(color: LabColor) -> float:
    """Distance from neutral grey; high values are hard to substitute."""
    return abs(color.L - 50) + abs(color.a) + abs(color.b)


def analyze_target_cells(
    target: Image.Image,
    cols: int,
    rows: int,
    samples_per_cell: int = 10,
) -> list[GridCell]:
    """Sample *target* into ``cols x rows`` cells, row-major.

    The target is resized once to ``cols*K x rows*K`` and each ``K x K``
    block is averaged, so the source is never re-read per cell.
    """
    t0 = time.perf_counter()
    k = samples_per_cell
    sample = target.convert("RGB").resize((cols * k, rows * k), Image.LANCZOS)
    blocks = np.asarray(sample, dtype=np.float64).reshape(rows, k, cols, k, 3)
    means = blocks.mean(axis=(1, 3)).reshape(-1, 3)
    labs = rgb_to_lab(means)

    cell_w = target.width / cols
    cell_h = target.height / rows
    cells = [
        GridCell(
            x=(i % cols) * cell_w,
            y=(i // cols) * cell_h,
            width=cell_w,
            height=cell_h,
            average_color=LabColor(*map(float, lab)),
            bounds=cell_bounds(i % cols, i // cols, cols, rows, target.width, target.height),
        )
        for i, lab in enumerate(labs)
    ]
    logger.info(
        "Analysed %d cells (%dx%d samples)  (%.2f s)",
        len(cells), cols * k, rows * k, time.perf_counter() - t0,
    )
    return cells
