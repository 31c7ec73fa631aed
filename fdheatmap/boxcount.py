"""
Box counting on binary windows and the log-log fit behind it.

Conventions used throughout the package:
- Box sizes follow B_min * k**i and stop while ``size < N / 2``.
- Boxes running past the window edge are clipped, never wrapped or skipped.
- A zero count has no logarithm; its point is recorded as ln(count) = 0.0.
  This pulls the fit towards zero for sparse windows.
- The dimension is the negated OLS slope of ln(count) against ln(size).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .errors import InsufficientSamples


def _ladder(min_box: int, scaling_factor: int, limit: float) -> List[int]:
    min_box = int(min_box)
    scaling_factor = int(scaling_factor)
    if min_box < 1 or scaling_factor < 2:
        raise ValueError("min_box must be >= 1 and scaling_factor >= 2.")
    sizes = []
    s = min_box
    while s < limit:
        sizes.append(s)
        s *= scaling_factor
    return sizes


def box_sizes(neighborhood_size: int, min_box: int, scaling_factor: int) -> List[int]:
    """Box sizes B_min, B_min*k, ... strictly below ``neighborhood_size / 2``."""
    sizes = _ladder(min_box, scaling_factor, neighborhood_size / 2)
    if len(sizes) < 2:
        raise InsufficientSamples(
            f"neighborhood {neighborhood_size} with min_box={min_box}, k={scaling_factor} "
            f"gives box sizes {sizes}; at least 2 are needed for the fit"
        )
    return sizes


def count_boxes(mask: np.ndarray, s: int, occupancy: str = "any") -> int:
    """Number of s x s tiles satisfying the occupancy rule.

    occupancy="any": at least one non-zero pixel in the tile.
    occupancy="all": every pixel of the (clipped) tile is non-zero.
    """
    nz = (np.asarray(mask) != 0).astype(np.int64)
    h, w = nz.shape
    ys = np.arange(0, h, s)
    xs = np.arange(0, w, s)
    sums = np.add.reduceat(np.add.reduceat(nz, ys, axis=0), xs, axis=1)
    if occupancy == "any":
        occ = sums > 0
    elif occupancy == "all":
        area = np.outer(np.minimum(ys + s, h) - ys, np.minimum(xs + s, w) - xs)
        occ = sums == area
    else:
        raise ValueError("occupancy must be 'any' or 'all'.")
    return int(occ.sum())


def safe_log(count: float) -> float:
    return math.log(count) if count > 0 else 0.0


def log_log_points(sizes: Sequence[int], counts: Sequence[int]) -> List[Tuple[float, float]]:
    return [(math.log(s), safe_log(c)) for s, c in zip(sizes, counts)]


@dataclass
class FitResult:
    slope: float
    intercept: float
    r2: float
    n: int
    slope_stderr: float
    intercept_stderr: float


def linear_fit(x, y) -> FitResult:
    """Ordinary least squares line through (x, y).

    Zero spread in x gives slope 0 and intercept mean(y).
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = len(x)
    if n < 2:
        raise InsufficientSamples(f"linear fit needs at least 2 points; got {n}")
    xm = float(x.mean())
    ym = float(y.mean())
    Sxx = float(np.sum((x - xm) ** 2))
    if Sxx > 0:
        m = float(np.sum((x - xm) * (y - ym))) / Sxx
    else:
        m = 0.0
    b = ym - m * xm
    yhat = m * x + b
    ss_res = float(np.sum((y - yhat) ** 2))
    ss_tot = float(np.sum((y - ym) ** 2))
    r2 = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0
    sigma2 = ss_res / (n - 2) if n > 2 else 0.0
    slope_stderr = float(np.sqrt(sigma2 / Sxx)) if Sxx > 0 else 0.0
    intercept_stderr = float(np.sqrt(sigma2 * (1.0 / n + xm ** 2 / Sxx))) if Sxx > 0 else 0.0
    return FitResult(slope=m, intercept=b, r2=r2, n=n, slope_stderr=slope_stderr, intercept_stderr=intercept_stderr)


def dimension_from_points(points: Sequence[Tuple[float, float]]) -> float:
    if len(points) < 2:
        raise InsufficientSamples(f"linear fit needs at least 2 points; got {len(points)}")
    x, y = zip(*points)
    fit = linear_fit(x, y)
    # 0.0 - slope keeps a flat fit at +0.0
    return 0.0 - fit.slope


def local_fractal_dimension(
    neighborhood: np.ndarray,
    min_box: int,
    scaling_factor: int,
    occupancy: str = "any",
) -> float:
    """Box-counting dimension of one square window."""
    n = np.asarray(neighborhood).shape[0]
    sizes = box_sizes(n, min_box, scaling_factor)
    counts = [count_boxes(neighborhood, s, occupancy) for s in sizes]
    return dimension_from_points(log_log_points(sizes, counts))


def global_fractal_dimension(
    grid: np.ndarray,
    min_box: int,
    scaling_factor: int,
    occupancy: str = "any",
    max_box: int = 64,
) -> Tuple[float, List[Tuple[float, float]], FitResult]:
    """Single dimension for a whole grid, box sizes below ``max_box``."""
    sizes = _ladder(min_box, scaling_factor, max_box)
    counts = [count_boxes(grid, s, occupancy) for s in sizes]
    points = log_log_points(sizes, counts)
    if len(points) < 2:
        raise InsufficientSamples(f"box sizes {sizes} below {max_box} give fewer than 2 points")
    x, y = zip(*points)
    fit = linear_fit(x, y)
    return 0.0 - fit.slope, points, fit
