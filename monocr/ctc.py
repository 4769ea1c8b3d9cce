"""
Charset + CTC greedy decoding.

Index 0 is the CTC blank; character i (1-based) maps to charset[i - 1].
Decoding removes blanks and collapses consecutive repeats, so
``A blank A`` reads "AA" while ``A A`` reads "A".
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np

from .config import OCRConfig as cfg


def ctc_greedy_decode(indices: Iterable[int], charset: Sequence[str]) -> str:
    """Collapse a per-timestep index sequence into text."""
    decoded = []
    prev = -1
    for idx in indices:
        if idx != cfg.CTC_BLANK and idx != prev:
            # Indices past the charset mean a model/charset mismatch; skip them
            if 0 < idx <= len(charset):
                decoded.append(charset[idx - 1])
        prev = idx
    return "".join(decoded)


def ctc_greedy_decode_with_confidence(
    indices: Sequence[int],
    max_probs: Sequence[float],
    charset: Sequence[str],
) -> Tuple[str, float]:
    """Greedy decode plus the mean probability of the emitted symbols."""
    decoded = []
    confidences = []
    prev = -1
    for idx, prob in zip(indices, max_probs):
        if idx != cfg.CTC_BLANK and idx != prev and 0 < idx <= len(charset):
            decoded.append(charset[idx - 1])
            confidences.append(float(prob))
        prev = idx
    confidence = float(np.mean(confidences)) if confidences else 0.0
    return "".join(decoded), confidence


class CharCodec:
    """Maps characters <-> indices for CTC decode.

    Index 0 is reserved for CTC blank token.
    Character indices start from 1.
    """

    def __init__(self, chars: Iterable[str] = ()):
        self.chars = tuple(chars)
        self.char_to_idx = {}
        for i, ch in enumerate(self.chars):
            self.char_to_idx.setdefault(ch, i + 1)
        self.num_classes = len(self.chars) + 1  # +1 for CTC blank

    @classmethod
    def from_text(cls, text: str) -> "CharCodec":
        """Every character of the trimmed charset document is one class."""
        return cls(text.strip())

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CharCodec":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_text(f.read())

    def encode(self, text: str) -> List[int]:
        """Convert text string to list of indices (unknown chars -> blank)."""
        return [self.char_to_idx.get(ch, cfg.CTC_BLANK) for ch in text]

    def decode(self, indices: Iterable[int]) -> str:
        """Convert indices back to text without CTC collapsing."""
        return "".join(self.chars[i - 1] for i in indices if 0 < i <= len(self.chars))

    def decode_ctc(self, indices: Iterable[int]) -> str:
        return ctc_greedy_decode(indices, self.chars)

    def __len__(self):
        return len(self.chars)

    def __getitem__(self, i):
        return self.chars[i]
