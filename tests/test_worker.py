"""Tests for the thread worker message loop."""
import queue

from fakes import ScriptedSession, one_hot_logits
from inference.messages import MessageType, ResponseType, WorkerMessage
from inference.ocr_pipeline import MonOCREngine
from inference.worker import ThreadWorker
from monocr.assets import AssetSource
from monocr.contracts import ErrorKind, Failure, RecognitionResult


def start_worker(session=None):
    responses, errors = queue.Queue(), queue.Queue()
    session = session or ScriptedSession(default=one_hot_logits([1], 3))
    worker = ThreadWorker(
        responses.put,
        errors.put,
        engine_factory=lambda: MonOCREngine(session_factory=lambda blob: session),
    )
    return worker, responses, errors, session


def test_recognize_before_init(two_line_png):
    worker, responses, _, _ = start_worker()
    try:
        worker.post(WorkerMessage('r1', MessageType.RECOGNIZE, two_line_png))
        response = responses.get(timeout=5)
    finally:
        worker.terminate(timeout=5)

    assert response.id == 'r1'
    assert response.type is ResponseType.ERROR
    assert response.payload == Failure(ErrorKind.NOT_INITIALIZED, 'Model not initialized. Call initialize() first.')


def test_messages_are_served_in_order(assets_dir, two_line_png):
    worker, responses, _, _ = start_worker()
    assets = AssetSource(assets_dir / 'model.bin', assets_dir / 'charset.txt')
    try:
        worker.post(WorkerMessage('init', MessageType.INIT, assets))
        worker.post(WorkerMessage('a', MessageType.RECOGNIZE, two_line_png))
        worker.post(WorkerMessage('b', MessageType.RECOGNIZE, b'garbage'))
        got = [responses.get(timeout=5) for _ in range(3)]
    finally:
        worker.terminate(timeout=5)

    assert [r.id for r in got] == ['init', 'a', 'b']
    assert got[0].type is ResponseType.RESULT and got[0].payload is None
    assert isinstance(got[1].payload, RecognitionResult)
    assert got[1].payload.text == 'A\nA'
    assert got[2].type is ResponseType.ERROR
    assert got[2].payload.kind is ErrorKind.RECOGNITION_FAILED


def test_handler_exception_becomes_init_failure():
    class BrokenAssets:
        def load_model(self):
            raise OSError('disk gone')

    worker, responses, errors, _ = start_worker()
    try:
        worker.post(WorkerMessage('init', MessageType.INIT, BrokenAssets()))
        response = responses.get(timeout=5)
    finally:
        worker.terminate(timeout=5)

    assert response.type is ResponseType.ERROR
    assert response.payload.kind is ErrorKind.INIT_FAILED
    assert 'disk gone' in response.payload.message
    assert errors.empty()


def test_terminate_disposes_engine(assets_dir):
    worker, responses, _, session = start_worker()
    assets = AssetSource(assets_dir / 'model.bin', assets_dir / 'charset.txt')
    worker.post(WorkerMessage('init', MessageType.INIT, assets))
    responses.get(timeout=5)
    worker.terminate(timeout=5)

    assert not worker.alive
    assert session.released


def test_engine_factory_crash_reports_error():
    errors = queue.Queue()

    def broken_factory():
        raise RuntimeError('no engine for you')

    worker = ThreadWorker(lambda r: None, errors.put, engine_factory=broken_factory)
    exc = errors.get(timeout=5)
    worker.terminate(timeout=5)
    assert isinstance(exc, RuntimeError)
    assert not worker.alive
