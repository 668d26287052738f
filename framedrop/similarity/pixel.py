"""In-process per-pixel similarity.

The score is an SSIM-shaped formula evaluated per pixel with the pixel
itself as its own mean, so the variance and covariance terms are always
zero and the score reduces to the luminance-comparison term::

    (2 * p1 * p2 + C1) / (p1**2 + p2**2 + C1)

averaged over every pixel.  There is no windowing.  This is a cheap
approximation for spotting near-identical frames; it is **not** SSIM
and its values must not be reported as such.  Identical images score
exactly ``1.0``.

Rows are summed in bands on a thread pool; band partial sums are
combined in row order so the result is deterministic.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from framedrop.errors import DimensionMismatchError, ImageDecodeError, SimilarityError
from framedrop.similarity.base import SimilarityScorer

logger = logging.getLogger(__name__)

# Stabilising constants for an 8-bit dynamic range.
_K1 = 0.01
_K2 = 0.03
_L = 255.0
C1 = (_K1 * _L) ** 2
C2 = (_K2 * _L) ** 2


def load_luma(path: str | Path) -> np.ndarray:
    """Decode ``path`` to a single-channel ``uint8`` array of shape (H, W).

    Raises
    ------
    ImageDecodeError
        If the file is missing or not a decodable image.
    """
    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise ImageDecodeError(f"Failed to decode image: {path}")
    return image


def _band_sum(luma_a: np.ndarray, luma_b: np.ndarray, start: int, stop: int) -> float:
    """Sum the per-pixel term over rows ``[start, stop)``."""
    p1 = luma_a[start:stop].astype(np.float64)
    p2 = luma_b[start:stop].astype(np.float64)

    mu1 = p1
    mu2 = p2
    sigma1_sq = (p1 - mu1) ** 2
    sigma2_sq = (p2 - mu2) ** 2
    sigma12 = (p1 - mu1) * (p2 - mu2)

    num = (2.0 * mu1 * mu2 + C1) * (2.0 * sigma12 + C2)
    den = (mu1**2 + mu2**2 + C1) * (sigma1_sq + sigma2_sq + C2)
    row_sums = (num / den).sum(axis=1)
    return float(row_sums.sum())


def pixel_similarity(
    luma_a: np.ndarray,
    luma_b: np.ndarray,
    workers: Optional[int] = None,
) -> float:
    """Mean per-pixel similarity of two equally sized luma rasters.

    Parameters
    ----------
    luma_a, luma_b : np.ndarray
        Single-channel images of identical shape.
    workers : int, optional
        Number of row bands to sum in parallel (default: CPU count).

    Raises
    ------
    DimensionMismatchError
        If the shapes differ.
    SimilarityError
        If the images are empty.
    """
    if luma_a.shape != luma_b.shape:
        raise DimensionMismatchError(
            f"images are different dimensions: {luma_a.shape[::-1]} vs {luma_b.shape[::-1]}"
        )
    height, width = luma_a.shape[:2]
    if height == 0 or width == 0:
        raise SimilarityError("cannot compare empty images")

    n_bands = max(1, min(height, workers or os.cpu_count() or 1))
    edges = np.linspace(0, height, n_bands + 1, dtype=int)
    bands = [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]

    if len(bands) == 1:
        total = _band_sum(luma_a, luma_b, 0, height)
    else:
        with ThreadPoolExecutor(max_workers=len(bands)) as pool:
            partials = list(
                pool.map(lambda band: _band_sum(luma_a, luma_b, band[0], band[1]), bands)
            )
        total = sum(partials)

    return total / float(height * width)


class PixelSimilarityScorer(SimilarityScorer):
    """Score frames in-process with :func:`pixel_similarity`.

    Parameters
    ----------
    row_workers : int, optional
        Row-band parallelism per comparison.
    """

    DUPLICATE_THRESHOLD = 0.95

    def __init__(self, row_workers: Optional[int] = None) -> None:
        super().__init__("pixel", self.DUPLICATE_THRESHOLD)
        self.row_workers = row_workers

    def score(self, image_a: str | Path, image_b: str | Path) -> float:
        luma_a = load_luma(image_a)
        luma_b = load_luma(image_b)
        return pixel_similarity(luma_a, luma_b, self.row_workers)
