"""Colour-space conversion and CIEDE2000 distances.

CIELAB uses the D65 white point (Xn=95.047, Yn=100.0, Zn=108.883) with the
standard cube-root / linear split at 0.008856 (kappa = 903.3), which is what
:func:`skimage.color.rgb2lab` implements.
"""

from __future__ import annotations

import warnings
from typing import NamedTuple

import numpy as np
from skimage.color import deltaE_ciede2000, lab2rgb, rgb2lab


class LabColor(NamedTuple):
    """Perceptual colour triple: L in [0, 100], a/b roughly in [-128, 127]."""

    L: float
    a: float
    b: float

    @classmethod
    def from_rgb(cls, r: float, g: float, b: float) -> LabColor:
        lab = rgb_to_lab(np.array([[r, g, b]], dtype=np.float64))[0]
        return cls(float(lab[0]), float(lab[1]), float(lab[2]))

    def to_rgb(self) -> tuple[int, int, int]:
        rgb = lab_to_rgb(np.array([self], dtype=np.float64))[0]
        return int(rgb[0]), int(rgb[1]), int(rgb[2])


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert flat (N, 3) RGB in [0, 255] → (N, 3) float64 CIELAB."""
    return rgb2lab(rgb.astype(np.float64).reshape(1, -1, 3) / 255.0).reshape(-1, 3)


def lab_to_rgb(lab: np.ndarray) -> np.ndarray:
    """Convert flat (N, 3) CIELAB → (N, 3) uint8 RGB, clamped per channel."""
    with warnings.catch_warnings():
        # out-of-gamut input is clamped below
        warnings.simplefilter("ignore", UserWarning)
        rgb = lab2rgb(np.asarray(lab, dtype=np.float64).reshape(1, -1, 3))
    return np.clip(np.rint(rgb.reshape(-1, 3) * 255.0), 0, 255).astype(np.uint8)


def delta_e_2000(c1: LabColor, c2: LabColor) -> float:
    """CIEDE2000 difference between two colours (kL = kC = kH = 1)."""
    return float(deltaE_ciede2000(np.asarray(c1, dtype=np.float64),
                                  np.asarray(c2, dtype=np.float64)))


def delta_e_matrix(
    source: np.ndarray,
    candidates: np.ndarray,
    chunk_size: int = 256,
) -> np.ndarray:
    """Pairwise CIEDE2000 between two colour sets.

    Args:
        source:     (M, 3) CIELAB.
        candidates: (N, 3) CIELAB.
        chunk_size: Rows computed per batch (controls peak RAM).

    Returns:
        (M, N) float64 distance matrix.
    """
    m, n = len(source), len(candidates)
    dist = np.empty((m, n), dtype=np.float64)
    for i in range(0, m, chunk_size):
        j = min(i + chunk_size, m)
        dist[i:j] = deltaE_ciede2000(
            source[i:j, np.newaxis, :], candidates[np.newaxis, :, :],
        )
    return dist


def blend(c1: LabColor, c2: LabColor, ratio: float) -> LabColor:
    """Linear interpolation from *c1* (ratio 0) to *c2* (ratio 1)."""
    return LabColor(
        c1.L + (c2.L - c1.L) * ratio,
        c1.a + (c2.a - c1.a) * ratio,
        c1.b + (c2.b - c1.b) * ratio,
    )
