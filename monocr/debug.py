"""Debug helpers for inspecting line segmentation."""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

from PIL import Image, ImageDraw

from .segmentation import LineSegment

logger = logging.getLogger(__name__)

START_COLOR = (0, 255, 0, 255)
END_COLOR = (255, 0, 0, 255)


def visualize_segments(image: Image.Image, segments: Sequence[LineSegment]) -> Image.Image:
    """
    Copy of the image with a green row at each segment start and a red row
    at each segment end (skipped when the end is the image bottom).
    """
    debug = image.convert("RGBA").copy()
    draw = ImageDraw.Draw(debug)
    width, height = debug.size

    for seg in segments:
        draw.line([(0, seg.y), (width - 1, seg.y)], fill=START_COLOR, width=1)
        end_y = seg.y + seg.height
        if end_y < height:
            draw.line([(0, end_y), (width - 1, end_y)], fill=END_COLOR, width=1)

    return debug


def log_segmentation_details(image_size: Tuple[int, int], segments: Sequence[LineSegment]) -> None:
    width, height = image_size
    logger.debug("Segmentation: image %dx%d, %d segments", width, height, len(segments))
    for i, seg in enumerate(segments, 1):
        coverage = seg.height / height * 100 if height else 0.0
        logger.debug("  Line %d: y=%d, height=%d (%.1f%% of image)", i, seg.y, seg.height, coverage)
