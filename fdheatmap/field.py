"""Per-pixel fractal-dimension field.

Two engines produce the same numbers:

- ``direct`` extracts every window and runs the box-counting estimator on it.
  Rows are split into disjoint ranges, which may run on a process pool.
- ``integral`` builds one summed-area table over the padded grid. It then
  counts each box position for all pixels at once with array slicing.
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import List, Tuple

import numpy as np
from tqdm import tqdm

from .boxcount import box_sizes, local_fractal_dimension
from .neighborhood import get_neighborhood, pad_for_neighborhoods, padded_offset

log = logging.getLogger(__name__)


def row_ranges(height: int, parts: int) -> List[Tuple[int, int]]:
    """Split ``range(height)`` into at most ``parts`` disjoint, contiguous ranges."""
    parts = max(1, min(int(parts), height))
    bounds = np.linspace(0, height, parts + 1).astype(int)
    return [(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]


def _direct_rows(grid: np.ndarray, start: int, stop: int, neighborhood_size: int,
                 min_box: int, scaling_factor: int, occupancy: str) -> Tuple[int, np.ndarray]:
    """Worker task: dimensions for rows [start, stop). Safe for ProcessPoolExecutor."""
    w = grid.shape[1]
    block = np.zeros((stop - start, w), dtype=np.float64)
    for r in range(start, stop):
        for c in range(w):
            nb = get_neighborhood(grid, r, c, neighborhood_size)
            block[r - start, c] = local_fractal_dimension(nb, min_box, scaling_factor, occupancy)
    return start, block


def _direct_field(grid: np.ndarray, config, progress: bool) -> np.ndarray:
    h, w = grid.shape
    out = np.zeros((h, w), dtype=np.float64)
    workers = int(config.workers)
    ranges = row_ranges(h, workers * 4 if workers > 1 else h)
    args = (config.neighborhood_size, config.min_box, config.scaling_factor, config.occupancy)
    bar = tqdm(total=h, desc="rows", unit="row") if progress else None
    try:
        if workers > 1:
            max_workers = min(workers, os.cpu_count() or 1)
            log.debug("direct engine: %d row ranges on %d processes", len(ranges), max_workers)
            with ProcessPoolExecutor(max_workers=max_workers) as ex:
                futs = [ex.submit(_direct_rows, grid, a, b, *args) for a, b in ranges]
                for fut in as_completed(futs):
                    start, block = fut.result()
                    out[start:start + block.shape[0]] = block
                    if bar is not None:
                        bar.update(block.shape[0])
        else:
            for a, b in ranges:
                start, block = _direct_rows(grid, a, b, *args)
                out[start:start + block.shape[0]] = block
                if bar is not None:
                    bar.update(block.shape[0])
    finally:
        if bar is not None:
            bar.close()
    return out


def _integral_field(grid: np.ndarray, config, progress: bool) -> np.ndarray:
    n = int(config.neighborhood_size)
    sizes = box_sizes(n, config.min_box, config.scaling_factor)
    h, w = grid.shape
    padded = pad_for_neighborhoods((grid != 0).astype(np.int64), n)
    sat = np.zeros((padded.shape[0] + 1, padded.shape[1] + 1), dtype=np.int64)
    sat[1:, 1:] = padded.cumsum(axis=0).cumsum(axis=1)
    off = padded_offset(n)

    log_counts = np.empty((len(sizes), h, w), dtype=np.float64)
    iter_sizes = tqdm(sizes, desc="box sizes") if progress else sizes
    for k, s in enumerate(iter_sizes):
        counts = np.zeros((h, w), dtype=np.int64)
        for p0 in range(0, n, s):
            p1 = min(p0 + s, n)
            y0, y1 = off + p0, off + p1
            for q0 in range(0, n, s):
                q1 = min(q0 + s, n)
                x0, x1 = off + q0, off + q1
                sums = (sat[y1:y1 + h, x1:x1 + w] - sat[y0:y0 + h, x1:x1 + w]
                        - sat[y1:y1 + h, x0:x0 + w] + sat[y0:y0 + h, x0:x0 + w])
                if config.occupancy == "all":
                    counts += sums == (p1 - p0) * (q1 - q0)
                else:
                    counts += sums > 0
        log_counts[k] = np.where(counts > 0, np.log(np.maximum(counts, 1)), 0.0)

    x = np.log(np.asarray(sizes, dtype=np.float64))
    dx = x - x.mean()
    Sxx = float(np.sum(dx ** 2))
    dy = log_counts - log_counts.mean(axis=0)
    slope = np.tensordot(dx, dy, axes=1) / Sxx
    return 0.0 - slope


def fractal_dimension_field(grid: np.ndarray, config, progress: bool = False) -> np.ndarray:
    """Local box-counting dimension at every cell of ``grid`` (same shape, float64)."""
    grid = np.asarray(grid)
    log.info("fractal field: %dx%d grid, N=%d, boxes=%s, occupancy=%s, engine=%s",
             grid.shape[0], grid.shape[1], config.neighborhood_size,
             box_sizes(config.neighborhood_size, config.min_box, config.scaling_factor),
             config.occupancy, config.engine)
    if config.engine == "direct":
        return _direct_field(grid, config, progress)
    if config.engine == "integral":
        return _integral_field(grid, config, progress)
    raise ValueError("engine must be 'integral' or 'direct'.")
