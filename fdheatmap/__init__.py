"""Local box-counting fractal dimension fields and their heatmaps.

Modules:
- grid: raw buffer -> intensity grid, crop/pad to a square.
- threshold: fixed and Otsu binarization.
- neighborhood: zero-padded windows around a pixel.
- boxcount: box counting, log-log OLS fit, local and global dimension.
- field: per-pixel dimension field (direct or summed-area-table engine).
- heatmap: gradient and discrete palettes, raster rendering.
- codec: Pillow decode/encode adapter.
- pipeline: end-to-end processing and the response payload.
"""
import logging

from .boxcount import (FitResult, box_sizes, count_boxes, global_fractal_dimension,
                       linear_fit, local_fractal_dimension)
from .config import FractalConfig
from .errors import CodecFailure, FractalError, InsufficientSamples, MalformedInput, PaletteGap
from .field import fractal_dimension_field
from .grid import square_grid, to_pixel_matrix
from .heatmap import DiscretePalette, GradientPalette, make_palette, render_heatmap
from .neighborhood import get_neighborhood
from .pipeline import ProcessingResult, process_image, process_pixels
from .threshold import binarize, otsu_threshold_u8

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "CodecFailure",
    "DiscretePalette",
    "FitResult",
    "FractalConfig",
    "FractalError",
    "GradientPalette",
    "InsufficientSamples",
    "MalformedInput",
    "PaletteGap",
    "ProcessingResult",
    "binarize",
    "box_sizes",
    "count_boxes",
    "fractal_dimension_field",
    "get_neighborhood",
    "global_fractal_dimension",
    "linear_fit",
    "local_fractal_dimension",
    "make_palette",
    "otsu_threshold_u8",
    "process_image",
    "process_pixels",
    "render_heatmap",
    "square_grid",
    "to_pixel_matrix",
]
