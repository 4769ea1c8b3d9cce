"""
In-process OCR worker.

One daemon thread owns one MonOCREngine and serves messages from a FIFO
inbox, one at a time. Replies and crashes are reported through the two
callbacks given at construction; they are invoked on the worker thread.
"""

import logging
import queue
import threading
from typing import Callable, Optional

from monocr.contracts import ErrorKind, Outcome

from .messages import MessageType, ResponseType, WorkerMessage, WorkerResponse
from .ocr_pipeline import MonOCREngine

logger = logging.getLogger(__name__)

_STOP = None


class ThreadWorker:
    """Runs an engine on a background thread."""

    def __init__(
        self,
        on_message: Callable[[WorkerResponse], None],
        on_error: Callable[[BaseException], None],
        engine_factory: Callable[[], MonOCREngine] = MonOCREngine,
        name: str = "monocr-worker",
    ):
        self._on_message = on_message
        self._on_error = on_error
        self._engine_factory = engine_factory
        self._inbox: "queue.Queue[Optional[WorkerMessage]]" = queue.Queue()
        self._terminated = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()
        logger.info("Worker %s started", name)

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def post(self, message: WorkerMessage) -> None:
        if self._terminated:
            raise RuntimeError("Worker terminated")
        self._inbox.put(message)

    def terminate(self, timeout: Optional[float] = None) -> None:
        """Stop after the message in progress; pass a timeout to wait for it."""
        if not self._terminated:
            self._terminated = True
            self._inbox.put(_STOP)
        if timeout is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        engine = None
        try:
            engine = self._engine_factory()
            while True:
                message = self._inbox.get()
                if message is _STOP:
                    break
                self._on_message(self._handle(engine, message))
        except BaseException as e:
            logger.exception("Worker %s crashed", self._thread.name)
            self._on_error(e)
        finally:
            if engine is not None:
                engine.dispose()
            logger.info("Worker %s stopped", self._thread.name)

    def _handle(self, engine: MonOCREngine, message: WorkerMessage) -> WorkerResponse:
        try:
            if message.type is MessageType.INIT:
                assets = message.payload
                outcome = engine.initialize(assets.load_model(), assets.load_charset())
            elif message.type is MessageType.RECOGNIZE:
                outcome = engine.recognize_image(message.payload)
            else:
                outcome = Outcome.fail(ErrorKind.WORKER_ERROR, f"Unknown message type: {message.type!r}")
        except Exception as e:
            logger.exception("%s handler failed", message.type)
            kind = ErrorKind.INIT_FAILED if message.type is MessageType.INIT else ErrorKind.RECOGNITION_FAILED
            outcome = Outcome.fail(kind, str(e) or type(e).__name__)

        if outcome.ok:
            return WorkerResponse(message.id, ResponseType.RESULT, outcome.value)
        return WorkerResponse(message.id, ResponseType.ERROR, outcome.failure)
