"""Test doubles: image builders, a scripted model session and a fake worker."""
import io
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image

from inference.backends import ModelSession
from inference.messages import MessageType, ResponseType, WorkerResponse
from monocr.contracts import RecognitionResult


def band_image(height: int, width: int, bands: Sequence[tuple], ink: int = 0, paper: int = 255) -> np.ndarray:
    """RGB page with full-width dark bands over the (start, end) row ranges."""
    img = np.full((height, width, 3), paper, dtype=np.uint8)
    for start, end in bands:
        img[start:end] = ink
    return img


def png_bytes(arr: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(arr).save(buffer, format='PNG')
    return buffer.getvalue()


def one_hot_logits(indices: Sequence[int], num_classes: int, peak: float = 10.0) -> np.ndarray:
    """(1, T, C) logits whose argmax is `indices`."""
    logits = np.zeros((1, len(indices), num_classes), dtype=np.float32)
    for t, idx in enumerate(indices):
        logits[0, t, idx] = peak
    return logits


class ScriptedSession(ModelSession):
    """
    Replays scripted outputs for recognition calls.

    The all-zero warm-up tensor is recorded separately and never consumes
    the script. A script entry that is an exception is raised instead.
    """

    def __init__(self, script: Optional[List] = None, default=None):
        self.script = list(script or [])
        self.default = default if default is not None else one_hot_logits([0, 0], 3)
        self.warmups: List[np.ndarray] = []
        self.calls: List[np.ndarray] = []
        self.released = False

    def run(self, tensor):
        if not np.any(tensor):
            self.warmups.append(tensor)
            return {'logits': self.default}
        self.calls.append(tensor)
        entry = self.script.pop(0) if self.script else self.default
        if isinstance(entry, BaseException):
            raise entry
        return {'logits': entry}

    def release(self):
        self.released = True


class FakeWorker:
    """
    Synchronous stand-in for ThreadWorker.

    By default INIT succeeds and RECOGNIZE echoes the image bytes as text.
    A handler returning None holds the message; tests answer it later with
    `reply`.
    """

    def __init__(self, on_message, on_error, engine_factory=None, handler=None):
        self.on_message = on_message
        self.on_error = on_error
        self.handler = handler or default_handler
        self.posted = []
        self.held = []
        self.terminated = False

    def post(self, message):
        self.posted.append(message)
        response = self.handler(message)
        if response is None:
            self.held.append(message)
        else:
            self.on_message(response)

    def reply(self, message, payload=None, type=ResponseType.RESULT):
        self.on_message(WorkerResponse(message.id, type, payload))

    def terminate(self):
        self.terminated = True

    def types(self):
        return [m.type for m in self.posted]


def default_handler(message):
    if message.type is MessageType.INIT:
        return WorkerResponse(message.id, ResponseType.RESULT, None)
    return WorkerResponse(message.id, ResponseType.RESULT, RecognitionResult(text=message.payload.decode()))


def hold_recognize(message):
    if message.type is MessageType.RECOGNIZE:
        return None
    return default_handler(message)


class WorkerFactory:
    """Builds FakeWorkers and remembers them."""

    def __init__(self, handler=None):
        self.handler = handler
        self.workers: List[FakeWorker] = []

    def __call__(self, on_message, on_error, engine_factory=None):
        worker = FakeWorker(on_message, on_error, engine_factory, handler=self.handler)
        self.workers.append(worker)
        return worker

    @property
    def last(self) -> FakeWorker:
        return self.workers[-1]
