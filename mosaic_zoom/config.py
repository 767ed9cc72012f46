"""Centralised configuration via frozen dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Tier = Literal["low", "medium", "high"]

TIERS: tuple[str, ...] = ("low", "medium", "high")
DETAIL_MULTIPLIERS: tuple[int, ...] = (1, 2, 3)


@dataclass(frozen=True)
class MosaicConfig:
    """Engine-wide tuneables, shared by every generation.

    Attributes:
        tier_density:         Output pixels per tile for each resolution tier.
        auto_low_detail:      Subdivide "low" tier grids 2x2 when no explicit
                              detail multiplier is requested.
        samples_per_cell:     Sample pixels per cell per axis for colour analysis.
        match_chunk_size:     Cells scored per CIEDE2000 block in the matcher.
        composite_batch_size: Assignments rendered before pasting onto the canvas.
        workers:              Thread pool size for tile rendering and DZI slicing.
        tint_brightness_threshold: Minimum |dL/100| before brightness is adjusted.
        tint_chroma_threshold:     Minimum |da| or |db| before the overlay is applied.
        max_output_side:      Optional cap on the longest mosaic side (None = target size).
        mosaic_quality:       JPEG quality of the finished mosaic.
        tile_thumbnail_side:  Side of the stored square tile thumbnail.
        tile_thumbnail_quality: JPEG quality of stored thumbnails.
        tile_average_side:    Resize side used to average a tile's colour.
        dzi_tile_size:        Deep Zoom tile side.
        dzi_overlap:          Deep Zoom overlap on interior tile edges.
        dzi_format:           Deep Zoom tile format (also the tile extension).
        dzi_quality:          JPEG quality of Deep Zoom tiles.
    """

    # Grid planning
    tier_density: dict[str, int] = field(
        default_factory=lambda: {"low": 2500, "medium": 1200, "high": 400}
    )
    auto_low_detail: bool = True

    # Analysis / matching
    samples_per_cell: int = 10
    match_chunk_size: int = 256

    # Compositing
    composite_batch_size: int = 20
    workers: int = 4
    tint_brightness_threshold: float = 0.01
    tint_chroma_threshold: float = 1.0
    max_output_side: int | None = None
    mosaic_quality: int = 80

    # Tile ingestion
    tile_thumbnail_side: int = 200
    tile_thumbnail_quality: int = 70
    tile_average_side: int = 50

    # Deep Zoom
    dzi_tile_size: int = 256
    dzi_overlap: int = 1
    dzi_format: str = "jpeg"
    dzi_quality: int = 90

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )


@dataclass(frozen=True)
class MosaicOptions:
    """Per-request generation options.

    Attributes:
        tier:               Resolution tier driving the default tile count.
        exact_tile_count:   Explicit tile count, overrides the tier formula.
        use_all_tiles:      With the "high" tier, one cell per pooled tile.
        use_recommended:    Take the tile count from the complexity analysis.
        detail_multiplier:  Split every planned cell into n x n sub-cells.
        allow_duplicates:   Allow a tile to fill more than one cell.
        max_usage_per_tile: Explicit usage cap when duplicates are allowed.
        allow_tinting:      Shift tile colours toward their cell colour.
        tint_intensity:     Fraction of the LAB difference applied when tinting.
    """

    tier: Tier = "medium"
    exact_tile_count: int | None = None
    use_all_tiles: bool = False
    use_recommended: bool = False
    detail_multiplier: int = 1
    allow_duplicates: bool = True
    max_usage_per_tile: int | None = None
    allow_tinting: bool = False
    tint_intensity: float = 0.2

    def __post_init__(self) -> None:
        if self.tier not in TIERS:
            msg = f"Unknown resolution tier '{self.tier}'. Available: {', '.join(TIERS)}"
            raise ValueError(msg)
        if self.detail_multiplier not in DETAIL_MULTIPLIERS:
            msg = f"detail_multiplier must be one of {DETAIL_MULTIPLIERS}"
            raise ValueError(msg)
        if self.exact_tile_count is not None and self.exact_tile_count < 1:
            msg = "exact_tile_count must be at least 1"
            raise ValueError(msg)
        if self.max_usage_per_tile is not None and self.max_usage_per_tile < 1:
            msg = "max_usage_per_tile must be at least 1"
            raise ValueError(msg)
        if not 0.0 <= self.tint_intensity <= 1.0:
            msg = "tint_intensity must be within [0, 1]"
            raise ValueError(msg)
