"""MonOCR Inference Module."""
from .backends import ModelSession, OnnxSession, TorchScriptSession, get_session_factory
from .messages import MessageType, ResponseType, WorkerMessage, WorkerResponse
from .ocr_pipeline import EngineState, MonOCREngine
from .orchestrator import InferenceOrchestrator
from .worker import ThreadWorker

__all__ = [
    'EngineState', 'MonOCREngine', 'InferenceOrchestrator', 'ThreadWorker',
    'ModelSession', 'OnnxSession', 'TorchScriptSession', 'get_session_factory',
    'MessageType', 'ResponseType', 'WorkerMessage', 'WorkerResponse',
]
