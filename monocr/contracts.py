"""
Result types and error taxonomy shared by the engine, the worker and the
orchestrator.

Engine operations never raise for expected failures; they return an
`Outcome` carrying either a value or a `Failure`. Only the orchestrator turns
failures into `OcrError` exceptions for its callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, Tuple, TypeVar

from .segmentation import LineSegment

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""

    INIT_FAILED = "INIT_FAILED"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    RECOGNITION_FAILED = "RECOGNITION_FAILED"
    TIMEOUT = "TIMEOUT"
    WORKER_ERROR = "WORKER_ERROR"
    ENGINE_DISPOSED = "ENGINE_DISPOSED"

    @property
    def retryable(self) -> bool:
        # Orchestrator state heals itself; engine failures repeat on the same input.
        return self in (ErrorKind.TIMEOUT, ErrorKind.WORKER_ERROR)


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str


class OcrError(Exception):
    """Raised by the orchestrator when a request fails."""

    def __init__(self, message: str, kind: ErrorKind, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.original_error = original_error

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @classmethod
    def from_failure(cls, failure: Failure) -> "OcrError":
        return cls(failure.message, failure.kind)

    def __repr__(self) -> str:
        return f"OcrError({self.kind.value}: {self.message})"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value (`ok=True`) or a `Failure`."""

    ok: bool
    value: Optional[T] = None
    failure: Optional[Failure] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "Outcome[T]":
        return cls(ok=False, failure=Failure(kind, message))

    def unwrap(self) -> T:
        if not self.ok:
            raise OcrError.from_failure(self.failure)
        return self.value


@dataclass(frozen=True)
class LineResult:
    """Recognized text of one segmented line."""

    segment: LineSegment
    text: str
    confidence: float


@dataclass(frozen=True)
class RecognitionResult:
    """Text of a whole image plus the per-line results it was built from."""

    text: str
    lines: Tuple[LineResult, ...] = ()
    meta: dict = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "lines": [
                {
                    "y": line.segment.y,
                    "height": line.segment.height,
                    "text": line.text,
                    "confidence": line.confidence,
                }
                for line in self.lines
            ],
            "meta": dict(self.meta),
        }
