"""End-to-end run: pixels -> square grid -> binary grid -> field -> heatmap."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from . import codec
from .config import FractalConfig
from .field import fractal_dimension_field
from .grid import square_grid, to_pixel_matrix
from .heatmap import make_palette, raster_bytes, render_heatmap
from .threshold import binarize

log = logging.getLogger(__name__)

RESPONSE_KEYS = {"field": "fractalDimensionMatrix", "grayscale": "grayscaleData"}


@dataclass
class ProcessingResult:
    grayscale: np.ndarray
    square: np.ndarray
    binary: np.ndarray
    field: np.ndarray
    raster: np.ndarray


def process_pixels(pixels, width: int, config: Optional[FractalConfig] = None,
                   progress: bool = False) -> ProcessingResult:
    """Run the whole core on a raw grayscale buffer; no file I/O happens here."""
    config = config or FractalConfig()
    gray = to_pixel_matrix(pixels, width)
    square = square_grid(gray, config.size)
    binary = binarize(square, method=config.threshold, fixed_thresh=config.fixed_thresh,
                      foreground=config.foreground, workers=config.workers)
    log.info("binarized %dx%d grid: foreground fraction %.4f",
             binary.shape[0], binary.shape[1], float(np.count_nonzero(binary)) / binary.size)
    field = fractal_dimension_field(binary, config, progress=progress)
    raster = render_heatmap(field, make_palette(config.palette, config.palette_min, config.palette_max))
    return ProcessingResult(grayscale=gray, square=square, binary=binary, field=field, raster=raster)


def build_response(result: ProcessingResult, heatmap_path: str, config: FractalConfig) -> Dict[str, Any]:
    key = RESPONSE_KEYS[config.response_data]
    data = result.field if config.response_data == "field" else result.grayscale
    return {"heatmapImageSourceName": os.path.basename(heatmap_path), key: data.tolist()}


def process_image(path: str, out_dir: str, config: Optional[FractalConfig] = None,
                  progress: bool = False) -> Tuple[Dict[str, Any], ProcessingResult]:
    """Decode ``path``, run the core, encode the heatmap into ``out_dir``.

    Returns the response payload and the in-memory result.
    """
    config = config or FractalConfig()
    pixels, width, height = codec.load_grayscale(path)
    log.info("processing %s (%dx%d)", path, width, height)
    result = process_pixels(pixels, width, config, progress=progress)
    data, w, h, channels = raster_bytes(result.raster)
    heatmap_path = codec.save_rgb(data, w, h, codec.heatmap_filename(out_dir), channels=channels)
    return build_response(result, heatmap_path, config), result


def write_field_matrix(field: np.ndarray, path: str) -> str:
    """Space-separated text matrix, one grid row per line."""
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    pd.DataFrame(np.asarray(field)).to_csv(path, sep=" ", header=False, index=False)
    return path
