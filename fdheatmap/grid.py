"""Raw grayscale buffer -> 2-D intensity grid, and the crop/pad normalizer."""
from __future__ import annotations

import numpy as np

from .errors import MalformedInput


def to_pixel_matrix(pixels, width: int) -> np.ndarray:
    """Split a flat grayscale buffer (one byte per pixel) into rows of ``width``."""
    width = int(width)
    if width < 1:
        raise MalformedInput(f"width must be >= 1; got {width}")
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        flat = np.frombuffer(bytes(pixels), dtype=np.uint8)
    else:
        arr = np.asarray(pixels)
        if arr.ndim != 1:
            raise MalformedInput(f"expected a flat pixel sequence; got shape {arr.shape}")
        if arr.size and (arr.min() < 0 or arr.max() > 255):
            raise MalformedInput("pixel values must lie in 0..255")
        flat = arr.astype(np.uint8)
    if flat.size == 0:
        raise MalformedInput("empty pixel buffer")
    if flat.size % width:
        raise MalformedInput(
            f"buffer of {flat.size} samples is not a multiple of width {width}"
        )
    grid = flat.reshape(-1, width).copy()
    grid.setflags(write=False)
    return grid


def square_grid(grid: np.ndarray, size: int) -> np.ndarray:
    """Crop or zero-pad ``grid`` to ``size`` x ``size``.

    Each axis is handled on its own: longer axes keep their first ``size``
    entries, shorter ones get trailing zeros. Nothing is rescaled.
    """
    grid = np.asarray(grid)
    if grid.ndim != 2 or grid.shape[0] == 0 or grid.shape[1] == 0:
        raise MalformedInput(f"expected a non-empty 2-D grid; got shape {grid.shape}")
    size = int(size)
    if size < 1:
        raise MalformedInput(f"standardized size must be >= 1; got {size}")
    out = np.zeros((size, size), dtype=grid.dtype)
    h = min(size, grid.shape[0])
    w = min(size, grid.shape[1])
    out[:h, :w] = grid[:h, :w]
    return out
