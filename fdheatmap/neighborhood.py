"""Zero-padded square windows around a pixel."""
from __future__ import annotations

import numpy as np


def window_bounds(center: int, size: int):
    """Half-open [start, stop) covering offsets -size//2 .. size - size//2 - 1."""
    start = center - size // 2
    return start, start + size


def get_neighborhood(grid: np.ndarray, row: int, col: int, size: int) -> np.ndarray:
    """Return the ``size`` x ``size`` window centred on (row, col).

    Coordinates that fall outside ``grid`` read as 0, so windows near the
    border carry more empty area than interior ones.
    """
    grid = np.asarray(grid)
    h, w = grid.shape
    out = np.zeros((size, size), dtype=grid.dtype)
    r0, r1 = window_bounds(row, size)
    c0, c1 = window_bounds(col, size)
    sr0, sr1 = max(r0, 0), min(r1, h)
    sc0, sc1 = max(c0, 0), min(c1, w)
    if sr0 < sr1 and sc0 < sc1:
        out[sr0 - r0:sr1 - r0, sc0 - c0:sc1 - c0] = grid[sr0:sr1, sc0:sc1]
    return out


def pad_for_neighborhoods(grid: np.ndarray, size: int) -> np.ndarray:
    """Pad ``grid`` with ``size`` zeros on every side.

    The window for (row, col) is then
    ``padded[row + off:row + off + size, col + off:col + off + size]``
    with ``off = size - size // 2``.
    """
    return np.pad(np.asarray(grid), size, mode="constant", constant_values=0)


def padded_offset(size: int) -> int:
    return size - size // 2
