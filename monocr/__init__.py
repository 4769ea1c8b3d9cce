"""
MonOCR: Offline OCR for the Mon Script
========================================

Line-level text recognition for photographed documents:
adaptive binarization, projection-profile line segmentation,
fixed-size line tensors and CTC greedy decoding.

Components:
- Segmentation: adaptive threshold + horizontal projection profile
- Preprocessing: line crop -> (1, 1, 64, 1024) tensor in [-1, 1]
- Decoding: argmax per timestep + CTC collapse

Usage:
    from monocr import segment_lines, encode, CharCodec
    from inference import InferenceOrchestrator
"""

__version__ = '1.0.0'
__author__ = 'MonOCR Team'

from .contracts import ErrorKind, Failure, LineResult, OcrError, Outcome, RecognitionResult
from .ctc import CharCodec, ctc_greedy_decode
from .preprocess import argmax_per_timestep, decode_image, encode
from .segmentation import LineSegment, binarize, segment_lines, to_grayscale

__all__ = [
    'CharCodec',
    'ErrorKind',
    'Failure',
    'LineResult',
    'LineSegment',
    'OcrError',
    'Outcome',
    'RecognitionResult',
    'argmax_per_timestep',
    'binarize',
    'ctc_greedy_decode',
    'decode_image',
    'encode',
    'segment_lines',
    'to_grayscale',
]
