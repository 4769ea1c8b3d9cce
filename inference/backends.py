"""
Model backends.

A session takes the (1, 1, 64, 1024) line tensor and returns its named
outputs; the first output is the (1, T, C) logit matrix.
"""

import io
import logging
from typing import Callable, Dict

import numpy as np

from monocr.config import OCRConfig as cfg

logger = logging.getLogger(__name__)


class ModelSession:
    """Interface for recognition model sessions."""

    def run(self, tensor: np.ndarray) -> Dict[str, np.ndarray]:
        raise NotImplementedError

    def release(self) -> None:
        pass


class OnnxSession(ModelSession):
    """ONNX Runtime session built from an in-memory model."""

    def __init__(self, model_bytes: bytes):
        import onnxruntime as ort

        options = ort.SessionOptions()
        options.graph_optimization_level = {
            "all": ort.GraphOptimizationLevel.ORT_ENABLE_ALL,
            "extended": ort.GraphOptimizationLevel.ORT_ENABLE_EXTENDED,
            "basic": ort.GraphOptimizationLevel.ORT_ENABLE_BASIC,
        }.get(cfg.GRAPH_OPTIMIZATION, ort.GraphOptimizationLevel.ORT_ENABLE_ALL)
        options.enable_cpu_mem_arena = cfg.ENABLE_CPU_MEM_ARENA
        options.enable_mem_pattern = cfg.ENABLE_MEM_PATTERN
        options.log_severity_level = cfg.LOG_SEVERITY_LEVEL
        options.intra_op_num_threads = cfg.NUM_THREADS

        available = set(ort.get_available_providers())
        providers = [p for p in cfg.PROVIDERS if p in available] or ["CPUExecutionProvider"]

        self._session = ort.InferenceSession(model_bytes, sess_options=options, providers=providers)
        inputs = self._session.get_inputs()
        self.input_name = inputs[0].name if inputs else cfg.INPUT_NAME
        self.output_names = [o.name for o in self._session.get_outputs()]
        logger.info("ONNX Runtime session ready (providers=%s)", self._session.get_providers())

    def run(self, tensor: np.ndarray) -> Dict[str, np.ndarray]:
        if self._session is None:
            raise RuntimeError("Session released")
        values = self._session.run(None, {self.input_name: tensor})
        return dict(zip(self.output_names, values))

    def release(self) -> None:
        self._session = None


class TorchScriptSession(ModelSession):
    """TorchScript module loaded from an in-memory checkpoint (CPU/CUDA)."""

    def __init__(self, model_bytes: bytes, device: str = "auto"):
        import torch

        self._torch = torch
        if device == "auto":
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = torch.device(device)
        self._module = torch.jit.load(io.BytesIO(model_bytes), map_location=self.device)
        self._module.eval()
        logger.info("TorchScript session ready on %s", self.device)

    def run(self, tensor: np.ndarray) -> Dict[str, np.ndarray]:
        if self._module is None:
            raise RuntimeError("Session released")
        torch = self._torch
        with torch.no_grad():
            out = self._module(torch.from_numpy(np.ascontiguousarray(tensor)).to(self.device))
        if isinstance(out, (tuple, list)):
            out = out[0]
        return {"logits": out.detach().cpu().numpy()}

    def release(self) -> None:
        self._module = None


SessionFactory = Callable[[bytes], ModelSession]

BACKENDS: Dict[str, SessionFactory] = {
    "onnx": OnnxSession,
    "torchscript": TorchScriptSession,
}


def get_session_factory(backend: str = cfg.BACKEND) -> SessionFactory:
    try:
        return BACKENDS[backend]
    except KeyError:
        raise ValueError(f"Unsupported backend: {backend!r} (choose from {sorted(BACKENDS)})") from None
