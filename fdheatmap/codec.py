"""Pillow adapter: decode to raw grayscale bytes, encode raw RGB to PNG."""
from __future__ import annotations

import logging
import os
import time
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from .errors import CodecFailure

log = logging.getLogger(__name__)


def load_grayscale(path: str) -> Tuple[bytes, int, int]:
    """Decode ``path`` into (8-bit grayscale bytes, width, height)."""
    try:
        with Image.open(path) as im:
            gray = im.convert("L")
            data = gray.tobytes()
            width, height = gray.size
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise CodecFailure(f"cannot decode image {path}: {e}") from e
    log.debug("decoded %s: %dx%d", path, width, height)
    return data, width, height


def save_rgb(data: bytes, width: int, height: int, path: str, channels: int = 3) -> str:
    if channels != 3:
        raise CodecFailure(f"only RGB rasters are supported; got {channels} channels")
    try:
        out_dir = os.path.dirname(path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        Image.frombytes("RGB", (width, height), data).save(path)
    except (OSError, ValueError) as e:
        raise CodecFailure(f"heatmap creation failed for {path}: {e}") from e
    log.debug("encoded %s: %dx%d", path, width, height)
    return path


def heatmap_filename(out_dir: str) -> str:
    return os.path.join(out_dir, f"img-{int(time.time() * 1000)}.png")
