"""
Line tensor codec.

encode:  source image + LineSegment -> (1, 1, 64, 1024) float32 in [-1, 1]
decode:  (1, T, C) logits -> per-timestep class indices
"""

from __future__ import annotations

import io
import math
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image, ImageOps

from .config import OCRConfig as cfg
from .segmentation import LineSegment

TARGET_HEIGHT = cfg.IMG_HEIGHT
TARGET_WIDTH = cfg.IMG_WIDTH
INPUT_SHAPE = (1, cfg.NUM_CHANNELS, TARGET_HEIGHT, TARGET_WIDTH)


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode JPG/PNG/WebP bytes into an upright RGBA image."""
    image = Image.open(io.BytesIO(image_bytes))
    image = ImageOps.exif_transpose(image)
    return image.convert("RGBA")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def scaled_width(source_width: int, segment_height: int) -> int:
    """Width of the line after scaling it to TARGET_HEIGHT, capped at TARGET_WIDTH."""
    scale = TARGET_HEIGHT / segment_height
    return max(1, min(_round_half_up(source_width * scale), TARGET_WIDTH))


def encode(image: Image.Image, segment: LineSegment) -> np.ndarray:
    """
    Crop a line band, scale it to the model height and pad to the model width.

    Steps:
      1. Crop the segment rows across the full image width
      2. Composite over white (transparent pixels read as background)
      3. Bilinear resize to (scaled_width, 64)
      4. Paste at the top-left of a white 1024x64 canvas
      5. Luma grayscale, normalize gray / 127.5 - 1

    Returns:
        float32 array of shape (1, 1, 64, 1024)
    """
    if segment.height <= 0:
        raise ValueError(f"Segment height must be positive, got {segment.height}")

    image = image.convert("RGBA")
    width = image.width
    new_w = scaled_width(width, segment.height)

    band = image.crop((0, segment.y, width, segment.y + segment.height))
    backdrop = Image.new("RGBA", band.size, (255, 255, 255, 255))
    backdrop.alpha_composite(band)
    line = backdrop.convert("RGB").resize((new_w, TARGET_HEIGHT), Image.BILINEAR)

    white = (cfg.BACKGROUND,) * 3
    canvas = Image.new("RGB", (TARGET_WIDTH, TARGET_HEIGHT), white)
    canvas.paste(line, (0, 0))

    arr = np.asarray(canvas, dtype=np.float64)
    gray = 0.299 * arr[..., 0] + 0.587 * arr[..., 1] + 0.114 * arr[..., 2]
    tensor = np.clip(gray / 127.5 - 1.0, -1.0, 1.0).astype(np.float32)
    return tensor.reshape(INPUT_SHAPE)


def blank_tensor() -> np.ndarray:
    """All-zero input used for warm-up."""
    return np.zeros(INPUT_SHAPE, dtype=np.float32)


# ---------------------------------------------------------------------------
# Logits -> indices
# ---------------------------------------------------------------------------
def _as_timestep_matrix(logits, shape: Optional[Sequence[int]] = None) -> np.ndarray:
    arr = np.asarray(logits, dtype=np.float32)
    if shape is not None:
        arr = arr.reshape(tuple(shape))
    if arr.ndim == 3:
        arr = arr[0]
    if arr.ndim != 2:
        raise ValueError(f"Expected logits of shape (1, T, C) or (T, C), got {arr.shape}")
    return arr


def argmax_per_timestep(logits, shape: Optional[Sequence[int]] = None) -> List[int]:
    """
    Greedy class choice for every timestep.

    Ties go to the lowest index and NaN never wins, so a row that is all
    NaN or all -inf maps to the blank class.
    """
    arr = _as_timestep_matrix(logits, shape)
    if arr.shape[0] == 0:
        return []
    if arr.shape[1] == 0:
        return [0] * arr.shape[0]
    arr = np.where(np.isnan(arr), -np.inf, arr)
    return arr.argmax(axis=1).tolist()


def softmax_max(logits, shape: Optional[Sequence[int]] = None) -> np.ndarray:
    """Probability of the winning class at every timestep."""
    arr = _as_timestep_matrix(logits, shape).astype(np.float64)
    if arr.size == 0:
        return np.zeros(arr.shape[0], dtype=np.float64)
    arr = np.where(np.isnan(arr), -np.inf, arr)
    peak = arr.max(axis=1, keepdims=True)
    peak = np.where(np.isfinite(peak), peak, 0.0)
    e = np.exp(arr - peak)
    total = e.sum(axis=1)
    total = np.where(total > 0, total, 1.0)
    return e.max(axis=1) / total
