"""
Mosaic Zoom
===========

Rebuild a target image out of a pool of photo tiles, each placed where its
average colour best matches (CIEDE2000), and publish the result as a
Deep Zoom (DZI) pyramid for pan-and-zoom viewing.

Pipeline:

- **Grid planning** from a resolution tier, an explicit count, or image complexity
- **Cell sampling** of the target in a single resize
- **Greedy matching** of extreme colours first, under per-tile usage caps
- **Batched compositing** with optional tinting toward each cell's colour
- **Pyramid building** into 256px overlapping tiles
"""

__version__ = "1.0.0"

from mosaic_zoom.analyzer import ImageAnalysis, analyze_image
from mosaic_zoom.cells import GridCell, analyze_target_cells
from mosaic_zoom.color_utils import LabColor, blend, delta_e_2000
from mosaic_zoom.compositor import apply_tint, composite_mosaic
from mosaic_zoom.config import MosaicConfig, MosaicOptions
from mosaic_zoom.deepzoom import DeepZoomPyramid, DziMetadata, parse_tile_path
from mosaic_zoom.errors import (
    InputError,
    InsufficientTilesError,
    MosaicError,
    NoTargetImageError,
    NoTilesError,
)
from mosaic_zoom.grid import GridPlan, grid_from_tile_count, plan_grid
from mosaic_zoom.matcher import TileAssignment, match_tiles
from mosaic_zoom.pipeline import MosaicResult, generate_mosaic
from mosaic_zoom.session import Session, SessionStore
from mosaic_zoom.tiles import TileImage, process_tile_image

__all__ = [
    "DeepZoomPyramid",
    "DziMetadata",
    "GridCell",
    "GridPlan",
    "ImageAnalysis",
    "InputError",
    "InsufficientTilesError",
    "LabColor",
    "MosaicConfig",
    "MosaicError",
    "MosaicOptions",
    "MosaicResult",
    "NoTargetImageError",
    "NoTilesError",
    "Session",
    "SessionStore",
    "TileAssignment",
    "TileImage",
    "analyze_image",
    "analyze_target_cells",
    "apply_tint",
    "blend",
    "composite_mosaic",
    "delta_e_2000",
    "generate_mosaic",
    "grid_from_tile_count",
    "match_tiles",
    "parse_tile_path",
    "plan_grid",
    "process_tile_image",
]
