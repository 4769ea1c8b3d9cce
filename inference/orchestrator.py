"""
Async front end for the OCR worker.

    async with InferenceOrchestrator(AssetSource("monocr.onnx", "charset.txt")) as ocr:
        text = await ocr.recognize(image_bytes)

Every request gets a correlation id and a timer. The pending map and the
worker handle are only touched on the orchestrator's event loop; worker
callbacks are marshalled onto it with call_soon_threadsafe.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Dict, Optional, Tuple

from monocr.assets import AssetSource
from monocr.config import OCRConfig as cfg
from monocr.contracts import ErrorKind, Failure, OcrError, RecognitionResult

from .messages import MessageType, ResponseType, WorkerMessage, WorkerResponse
from .ocr_pipeline import MonOCREngine
from .worker import ThreadWorker

logger = logging.getLogger(__name__)

WorkerFactory = Callable[..., Any]


class InferenceOrchestrator:
    """Owns one worker and correlates its replies with awaiting callers."""

    def __init__(
        self,
        assets: Optional[AssetSource] = None,
        *,
        timeout: float = cfg.TIMEOUT_S,
        engine_factory: Callable[[], MonOCREngine] = MonOCREngine,
        worker_factory: WorkerFactory = ThreadWorker,
    ):
        self.assets = assets or AssetSource()
        self.timeout = timeout
        self._engine_factory = engine_factory
        self._worker_factory = worker_factory

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._worker = None
        self._worker_token: Optional[object] = None
        self._pending: Dict[str, Tuple[asyncio.Future, asyncio.TimerHandle]] = {}
        self._init_task: Optional[asyncio.Future] = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def __aenter__(self) -> "InferenceOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def initialize(self) -> None:
        """Start the worker and load the model. Concurrent calls share one attempt."""
        self._bind_loop()
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        task = self._init_task
        try:
            await asyncio.shield(task)
        except BaseException:
            # A failed attempt is forgotten so the next call retries
            if task.done() and self._init_task is task:
                self._init_task = None
            raise

    async def recognize(self, image_bytes: bytes) -> str:
        result = await self.recognize_detailed(image_bytes)
        return result.text

    async def recognize_detailed(self, image_bytes: bytes) -> RecognitionResult:
        await self.initialize()
        return await self._request(MessageType.RECOGNIZE, image_bytes)

    def cleanup(self) -> None:
        """Reject everything in flight and stop the worker."""
        self._reject_all(ErrorKind.WORKER_ERROR, "Cleanup called")
        self._init_task = None
        worker, self._worker, self._worker_token = self._worker, None, None
        if worker is not None:
            worker.terminate()
            logger.info("Worker terminated")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _initialize(self) -> None:
        await self._request(MessageType.INIT, self.assets)
        logger.info("OCR worker initialized")

    def _bind_loop(self) -> None:
        """Follow the running loop; a worker started under another loop is replaced."""
        loop = asyncio.get_running_loop()
        if self._loop is not None and self._loop is not loop:
            logger.info("Event loop changed, restarting worker")
            self.cleanup()
        self._loop = loop

    def _ensure_worker(self) -> None:
        if self._worker is not None:
            return
        loop = self._loop
        token = object()

        def on_message(response: WorkerResponse) -> None:
            self._call_in_loop(loop, self._on_worker_message, token, response)

        def on_error(exc: BaseException) -> None:
            self._call_in_loop(loop, self._on_worker_error, token, exc)

        self._worker = self._worker_factory(on_message, on_error, engine_factory=self._engine_factory)
        self._worker_token = token

    @staticmethod
    def _call_in_loop(loop, callback, *args) -> None:
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            logger.debug("Event loop closed, dropping worker event")

    async def _request(self, msg_type: MessageType, payload: Any) -> Any:
        self._bind_loop()
        self._ensure_worker()
        request_id = uuid.uuid4().hex
        loop = self._loop
        fut = loop.create_future()
        timer = loop.call_later(self.timeout, self._on_timeout, request_id)
        self._pending[request_id] = (fut, timer)
        try:
            try:
                self._worker.post(WorkerMessage(request_id, msg_type, payload))
            except Exception as e:
                raise OcrError(f"Failed to post {msg_type.value} request: {e}", ErrorKind.WORKER_ERROR, e) from e
            return await fut
        finally:
            entry = self._pending.pop(request_id, None)
            if entry is not None:
                entry[1].cancel()

    def _on_timeout(self, request_id: str) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        fut, _ = entry
        if not fut.done():
            logger.warning("Request %s timed out after %.1fs", request_id, self.timeout)
            fut.set_exception(OcrError(f"Request timed out after {self.timeout:g}s", ErrorKind.TIMEOUT))

    def _on_worker_message(self, token: object, response: WorkerResponse) -> None:
        if token is not self._worker_token:
            return
        entry = self._pending.pop(response.id, None)
        if entry is None:
            logger.debug("Ignoring response for unknown request %s", response.id)
            return
        fut, timer = entry
        timer.cancel()
        if fut.done():
            return
        if response.type is ResponseType.RESULT:
            fut.set_result(response.payload)
        else:
            failure = response.payload
            if not isinstance(failure, Failure):
                failure = Failure(ErrorKind.WORKER_ERROR, str(failure))
            fut.set_exception(OcrError.from_failure(failure))

    def _on_worker_error(self, token: object, exc: BaseException) -> None:
        if token is not self._worker_token:
            return
        logger.error("Worker crashed: %r", exc)
        self._reject_all(ErrorKind.WORKER_ERROR, f"Worker error: {exc}", exc)
        self._worker = None
        self._worker_token = None
        self._init_task = None

    def _reject_all(self, kind: ErrorKind, message: str, original: Optional[BaseException] = None) -> None:
        pending, self._pending = self._pending, {}
        for fut, timer in pending.values():
            timer.cancel()
            if not fut.done():
                fut.set_exception(OcrError(message, kind, original))
