from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .errors import MalformedInput

log = logging.getLogger(__name__)


def histogram_u8(img_u8: np.ndarray, workers: int = 1) -> np.ndarray:
    """256-bin intensity histogram; with ``workers > 1`` row blocks are counted in parallel."""
    img_u8 = np.asarray(img_u8, dtype=np.uint8)
    if workers <= 1 or img_u8.ndim < 2 or img_u8.shape[0] < workers:
        return np.bincount(img_u8.ravel(), minlength=256).astype(np.int64)
    blocks = np.array_split(img_u8, workers, axis=0)
    with ThreadPoolExecutor(max_workers=workers) as ex:
        parts = list(ex.map(lambda b: np.bincount(b.ravel(), minlength=256), blocks))
    return np.sum(parts, axis=0).astype(np.int64)


def otsu_threshold_u8(img_u8: np.ndarray, workers: int = 1) -> int:
    """Otsu threshold: the first t in 0..255 maximizing between-class variance.

    An empty class contributes zero variance, so a single-valued image has
    zero variance everywhere and resolves to t = 0.
    """
    return otsu_threshold_from_hist(histogram_u8(img_u8, workers=workers))


def otsu_threshold_from_hist(hist: np.ndarray) -> int:
    hist = np.asarray(hist, dtype=np.int64)
    total = int(hist.sum())
    if total == 0:
        raise MalformedInput("cannot threshold an empty grid")
    levels = np.arange(256)
    # integer cumulatives keep the empty-class test exact
    cum_n = np.cumsum(hist)
    cum_s = np.cumsum(hist * levels)
    total_s = cum_s[-1]
    w_b = cum_n / total
    w_f = (total - cum_n) / total
    with np.errstate(divide="ignore", invalid="ignore"):
        mu_b = cum_s / cum_n
        mu_f = (total_s - cum_s) / (total - cum_n)
        sigma_b2 = w_b * w_f * (mu_b - mu_f) ** 2
    sigma_b2 = np.where((cum_n == 0) | (cum_n == total), 0.0, sigma_b2)
    return int(np.argmax(sigma_b2))


def binarize(
    img_u8: np.ndarray,
    method: str = "otsu",
    fixed_thresh: int = 128,
    foreground: int = 1,
    workers: int = 1,
) -> np.ndarray:
    """Map ``value > T`` to ``foreground`` and everything else to 0."""
    img_u8 = np.asarray(img_u8, dtype=np.uint8)
    if method == "otsu":
        hist = histogram_u8(img_u8, workers=workers)
        if np.count_nonzero(hist) <= 1:
            log.debug("uniform grid: otsu threshold is 0 and the output is all background")
            return np.zeros_like(img_u8)
        t = otsu_threshold_from_hist(hist)
    elif method == "fixed":
        t = int(np.clip(fixed_thresh, 0, 255))
    else:
        raise ValueError("threshold method must be 'otsu' or 'fixed'.")
    log.debug("binarize: method=%s threshold=%d", method, t)
    return np.where(img_u8 > t, foreground, 0).astype(np.uint8)
