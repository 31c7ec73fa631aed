"""False-colour rendering of a fractal-dimension field.

Palettes map values to RGB triplets and refuse values they do not cover
(``PaletteGap``). The renderer returns an H x W x 3 uint8 raster. Encoding it
to a file is the codec's job.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from .errors import PaletteGap

RGB = Tuple[int, int, int]

# 0.00 .. 2.00 in steps of 0.10, dark blue through green and yellow to dark red
DEFAULT_EDGES: Tuple[float, ...] = tuple(round(0.1 * i, 2) for i in range(21))
DEFAULT_COLORS: Tuple[RGB, ...] = (
    (0, 0, 0),
    (20, 11, 52),
    (40, 11, 84),
    (61, 19, 140),
    (46, 56, 186),
    (28, 94, 222),
    (20, 129, 240),
    (19, 164, 230),
    (24, 195, 200),
    (44, 219, 160),
    (83, 235, 117),
    (129, 245, 78),
    (172, 246, 52),
    (208, 236, 46),
    (236, 216, 48),
    (251, 186, 47),
    (253, 150, 38),
    (245, 111, 27),
    (225, 72, 16),
    (190, 36, 8),
)


# OLS round-off on the range bounds, e.g. 2.0000000000000004 for a filled window
EDGE_ATOL = 1e-9


def _covered(values: np.ndarray, lo: float, hi: float) -> np.ndarray:
    """Values clamped into [lo, hi]; anything further than EDGE_ATOL outside raises PaletteGap."""
    bad = ~((values >= lo - EDGE_ATOL) & (values <= hi + EDGE_ATOL))
    if np.any(bad):
        raise PaletteGap(float(values[bad][0]), lo, hi)
    return np.clip(values, lo, hi)


@dataclass(frozen=True)
class GradientPalette:
    """Continuous red/blue ramp: red = round(255 t), blue = round(255 (1 - t))."""

    lo: float = 0.0
    hi: float = 2.0

    def __post_init__(self):
        if not self.hi > self.lo:
            raise ValueError("gradient palette needs hi > lo.")

    def colors(self, values) -> np.ndarray:
        v = np.asarray(values, dtype=np.float64)
        v = _covered(v, self.lo, self.hi)
        t = (v - self.lo) / (self.hi - self.lo)
        out = np.zeros(v.shape + (3,), dtype=np.uint8)
        out[..., 0] = np.rint(255.0 * t)
        out[..., 2] = np.rint(255.0 * (1.0 - t))
        return out

    def color(self, value: float) -> RGB:
        return tuple(int(c) for c in self.colors(value))


@dataclass(frozen=True)
class DiscretePalette:
    """Half-open buckets [edges[i], edges[i+1]); the last bucket also takes edges[-1]."""

    edges: Tuple[float, ...] = DEFAULT_EDGES
    palette: Tuple[RGB, ...] = DEFAULT_COLORS

    def __post_init__(self):
        e = np.asarray(self.edges, dtype=np.float64)
        if e.ndim != 1 or e.size < 2 or np.any(np.diff(e) <= 0):
            raise ValueError("palette edges must be a strictly increasing sequence of >= 2 values.")
        if len(self.palette) != e.size - 1:
            raise ValueError(f"expected {e.size - 1} colours for {e.size} edges; got {len(self.palette)}.")
        for rgb in self.palette:
            if len(rgb) != 3 or any(not 0 <= int(c) <= 255 for c in rgb):
                raise ValueError(f"invalid RGB triplet {rgb!r}.")

    @property
    def lo(self) -> float:
        return float(self.edges[0])

    @property
    def hi(self) -> float:
        return float(self.edges[-1])

    def colors(self, values) -> np.ndarray:
        v = np.asarray(values, dtype=np.float64)
        v = _covered(v, self.lo, self.hi)
        edges = np.asarray(self.edges, dtype=np.float64)
        idx = np.searchsorted(edges, v, side="right") - 1
        idx = np.minimum(idx, len(self.palette) - 1)
        table = np.asarray(self.palette, dtype=np.uint8)
        return table[idx]

    def color(self, value: float) -> RGB:
        return tuple(int(c) for c in self.colors(value))


def spread_edges(lo: float, hi: float, buckets: int = len(DEFAULT_COLORS)) -> Tuple[float, ...]:
    """``buckets`` equal-width half-open buckets over [lo, hi]."""
    if (lo, hi) == (DEFAULT_EDGES[0], DEFAULT_EDGES[-1]) and buckets == len(DEFAULT_COLORS):
        return DEFAULT_EDGES
    return tuple(float(e) for e in np.linspace(lo, hi, buckets + 1))


def make_palette(name: str, lo: float = 0.0, hi: float = 2.0):
    """Named palette stretched over [lo, hi]."""
    if not hi > lo:
        raise ValueError("palette range needs hi > lo.")
    if name == "discrete":
        return DiscretePalette(edges=spread_edges(lo, hi))
    if name == "gradient":
        return GradientPalette(lo, hi)
    raise ValueError("palette must be 'discrete' or 'gradient'.")


def render_heatmap(field, palette) -> np.ndarray:
    """Map every cell of ``field`` through ``palette``; returns uint8 (H, W, 3)."""
    field = np.asarray(field, dtype=np.float64)
    if field.ndim != 2:
        raise ValueError(f"expected a 2-D field; got shape {field.shape}")
    return np.ascontiguousarray(palette.colors(field))


def raster_bytes(raster: np.ndarray) -> Tuple[bytes, int, int, int]:
    """Raw RGB buffer plus (width, height, channels) for the codec."""
    h, w, c = raster.shape
    return raster.tobytes(), w, h, c
