"""Image complexity scoring and tile-count recommendations.

Complexity blends two signals measured on a 200x200 resample:

- **colour variance** - spread of LAB colours, weighted toward lightness;
- **edge density** - mean central-difference gradient magnitude.

Busy, high-contrast images score high and are recommended more tiles.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from PIL import Image

from mosaic_zoom.color_utils import rgb_to_lab
from mosaic_zoom.grid import round_half_up

ANALYSIS_SIZE = 200

# Tile counts for a complexity multiplier of 1.0
BASE_TILES = {"low": 100, "medium": 300, "high": 800}


@dataclass(frozen=True)
class ImageAnalysis:
    width: int
    height: int
    complexity: int
    color_variance: float
    edge_density: float
    recommended_tiles: dict[str, int]


def color_variance(lab: np.ndarray) -> float:
    """Weighted LAB standard deviation of (N, 3) pixels."""
    if len(lab) == 0:
        return 0.0
    var = lab.var(axis=0)
    return float(math.sqrt(var[0] * 0.5 + var[1] * 0.25 + var[2] * 0.25))


def edge_density(rgb: np.ndarray) -> float:
    """Mean gradient magnitude of an (H, W, 3) image, scaled to 0-100."""
    px = rgb.astype(np.float64)
    if px.shape[0] < 3 or px.shape[1] < 3:
        return 0.0
    gx = np.abs(px[1:-1, 2:] - px[1:-1, :-2])
    gy = np.abs(px[2:, 1:-1] - px[:-2, 1:-1])
    avg = float(np.sqrt(gx ** 2 + gy ** 2).mean())
    return min(100.0, avg / 2.55)


def complexity_score(variance: float, edges: float) -> int:
    normalized_var = min(100.0, variance * 2)
    score = normalized_var * 0.6 + edges * 0.4
    return round_half_up(min(100.0, max(0.0, score)))


def recommended_tiles(complexity: int, width: int, height: int) -> dict[str, int]:
    """Tile counts per tier, scaled up for busy or elongated images."""
    if complexity < 30:
        multiplier = 0.7 + (complexity / 30) * 0.3
    elif complexity < 60:
        multiplier = 1.0 + ((complexity - 30) / 30) * 0.5
    else:
        multiplier = 1.5 + ((complexity - 60) / 40) * 1.0

    aspect_ratio = width / height
    multiplier *= max(1.0, math.sqrt(max(aspect_ratio, 1 / aspect_ratio)))

    return {tier: round_half_up(base * multiplier) for tier, base in BASE_TILES.items()}


def analyze_image(img: Image.Image) -> ImageAnalysis:
    """Score *img* and recommend tile counts for each tier."""
    sample = img.convert("RGB").resize((ANALYSIS_SIZE, ANALYSIS_SIZE), Image.LANCZOS)
    rgb = np.asarray(sample, dtype=np.uint8)

    variance = color_variance(rgb_to_lab(rgb.reshape(-1, 3)))
    edges = edge_density(rgb)
    complexity = complexity_score(variance, edges)

    return ImageAnalysis(
        width=img.width,
        height=img.height,
        complexity=complexity,
        color_variance=variance,
        edge_density=edges,
        recommended_tiles=recommended_tiles(complexity, img.width, img.height),
    )
