"""
Text Line Segmentation
========================
Horizontal projection profile segmentation for photographed documents.

Algorithm:
  1. Convert to grayscale (0.299R + 0.587G + 0.114B)
  2. Adaptive binarization against the local 25x25 mean (handles
     shadows and uneven lighting)
  3. Row density = number of text pixels per row
  4. Smooth the profile with a clamped box filter
  5. Rows above 2% of the peak density are text; runs of text rows
     longer than 8 rows become lines, padded by 4 rows each side

Usage:
    from monocr.segmentation import segment_lines

    segments = segment_lines(Image.open('page.jpg'))
    for seg in segments:
        print(seg.y, seg.height)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Union

import numpy as np
from PIL import Image

from .config import OCRConfig as cfg

ImageLike = Union[Image.Image, np.ndarray]


@dataclass(frozen=True)
class LineSegment:
    """Horizontal band (padding included) in source image coordinates."""
    y: int
    height: int

    @property
    def bottom(self) -> int:
        return self.y + self.height


# ---------------------------------------------------------------------------
# Grayscale
# ---------------------------------------------------------------------------
def _as_rgba_array(image: ImageLike) -> np.ndarray:
    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGBA"))
    arr = np.asarray(image)
    if arr.ndim == 2:
        return arr
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"Expected (H, W, 3|4) pixel array, got shape {arr.shape}")
    return arr


def to_grayscale(image: ImageLike, chunk_rows: int = cfg.CHUNK_ROWS) -> np.ndarray:
    """Luma of every pixel, truncated to a byte. Alpha is ignored."""
    arr = _as_rgba_array(image)
    if arr.ndim == 2:
        return arr.astype(np.uint8, copy=False)

    h, w = arr.shape[:2]
    gray = np.empty((h, w), dtype=np.uint8)
    for r0 in range(0, h, chunk_rows):
        block = arr[r0:r0 + chunk_rows]
        r = block[..., 0].astype(np.float64)
        g = block[..., 1].astype(np.float64)
        b = block[..., 2].astype(np.float64)
        gray[r0:r0 + chunk_rows] = (0.299 * r + 0.587 * g + 0.114 * b).astype(np.uint8)
    return gray


# ---------------------------------------------------------------------------
# Binarization
# ---------------------------------------------------------------------------
def integral_image(gray: np.ndarray) -> np.ndarray:
    """Summed-area table with a leading zero row and column.

    ``ii[y + 1, x + 1]`` is the sum of ``gray[:y + 1, :x + 1]``.
    """
    h, w = gray.shape
    ii = np.zeros((h + 1, w + 1), dtype=np.int64)
    ii[1:, 1:] = gray.astype(np.int64).cumsum(axis=0).cumsum(axis=1)
    return ii


def binarize(
    gray: np.ndarray,
    window_size: int = cfg.WINDOW_SIZE,
    c: int = cfg.BIAS_C,
    chunk_rows: int = cfg.CHUNK_ROWS,
) -> np.ndarray:
    """Adaptive mean thresholding. Returns a uint8 mask, 1 = text (dark) pixel.

    Rows are processed in bands of `chunk_rows`; each band only builds the
    summed-area table of the rows its windows reach, so peak memory grows
    with the image width rather than the image area.
    """
    gray = np.asarray(gray, dtype=np.uint8)
    h, w = gray.shape
    mask = np.zeros((h, w), dtype=np.uint8)
    if h == 0 or w == 0:
        return mask

    half = window_size // 2
    xs = np.arange(w)
    x1 = np.maximum(0, xs - half)
    x2 = np.minimum(w - 1, xs + half)
    col_counts = x2 - x1 + 1

    for r0 in range(0, h, chunk_rows):
        r1 = min(h, r0 + chunk_rows)
        lo = max(0, r0 - half)
        hi = min(h, r1 + half)
        ii = integral_image(gray[lo:hi])

        ys = np.arange(r0, r1)
        y1 = np.maximum(0, ys - half) - lo
        y2 = np.minimum(h - 1, ys + half) - lo

        # Window [y1..y2] x [x1..x2] inclusive, shifted by one into the padded table
        sums = ii[np.ix_(y2 + 1, x2 + 1)]
        sums -= ii[np.ix_(y1, x2 + 1)]
        sums -= ii[np.ix_(y2 + 1, x1)]
        sums += ii[np.ix_(y1, x1)]
        mean = sums / np.outer(y2 - y1 + 1, col_counts)
        mean -= c

        mask[r0:r1] = gray[r0:r1] < mean
    return mask


# ---------------------------------------------------------------------------
# Projection profile
# ---------------------------------------------------------------------------
def projection_profile(mask: np.ndarray) -> np.ndarray:
    """Text pixels per row."""
    return mask.sum(axis=1).astype(np.float32)


def smooth_profile(hist: np.ndarray, kernel: int = cfg.SMOOTH_KERNEL) -> np.ndarray:
    """Box filter; border rows average only the samples that exist."""
    hist = np.asarray(hist, dtype=np.float32)
    if kernel <= 1 or hist.size == 0:
        return hist.copy()

    n = hist.size
    half = kernel // 2
    csum = np.concatenate([[0.0], np.cumsum(hist, dtype=np.float64)])
    ys = np.arange(n)
    lo = np.maximum(0, ys - half)
    hi = np.minimum(n - 1, ys + half)
    return ((csum[hi + 1] - csum[lo]) / (hi - lo + 1)).astype(np.float32)


def find_text_runs(hist: np.ndarray, ratio: float = cfg.DENSITY_RATIO) -> List[tuple]:
    """(start, end) row ranges, end exclusive, whose density exceeds the threshold."""
    if hist.size == 0:
        return []
    threshold = float(hist.max()) * ratio
    is_text = hist.astype(np.float64) > threshold

    runs = []
    start = None
    for y, text_row in enumerate(is_text):
        if text_row and start is None:
            start = y
        elif not text_row and start is not None:
            runs.append((start, y))
            start = None
    if start is not None:
        runs.append((start, int(hist.size)))
    return runs


# ---------------------------------------------------------------------------
# Line segmentation
# ---------------------------------------------------------------------------
def segment_lines(
    image: ImageLike,
    smooth_kernel: int = cfg.SMOOTH_KERNEL,
    min_span: int = cfg.MIN_LINE_SPAN,
    pad: int = cfg.LINE_PADDING,
) -> List[LineSegment]:
    """
    Find text lines in an image.

    Args:
        image: PIL image or (H, W[, C]) pixel array
        smooth_kernel: Box filter width over the row profile
        min_span: Runs spanning this many rows or fewer are dropped
        pad: Rows of padding added above and below each line

    Returns:
        Segments in top-to-bottom order; empty if no row holds text.
    """
    gray = to_grayscale(image)
    height = gray.shape[0]
    if gray.size == 0:
        return []

    mask = binarize(gray)
    hist = smooth_profile(projection_profile(mask), smooth_kernel)

    segments = []
    for start, end in find_text_runs(hist):
        if end - start <= min_span:
            continue
        y1 = max(0, start - pad)
        y2 = min(height, end + pad)
        segments.append(LineSegment(y=y1, height=y2 - y1))
    return segments
