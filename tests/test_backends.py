"""Tests for model session backends."""
import io

import numpy as np
import pytest

from inference.backends import BACKENDS, OnnxSession, TorchScriptSession, get_session_factory
from monocr.preprocess import blank_tensor


def test_get_session_factory():
    assert get_session_factory('onnx') is OnnxSession
    assert get_session_factory('torchscript') is TorchScriptSession
    assert sorted(BACKENDS) == ['onnx', 'torchscript']


def test_unknown_backend():
    with pytest.raises(ValueError, match='tflite'):
        get_session_factory('tflite')


def test_onnx_session_runs_identity_model():
    onnx = pytest.importorskip('onnx')
    pytest.importorskip('onnxruntime')
    from onnx import TensorProto, helper

    shape = [1, 1, 64, 1024]
    graph = helper.make_graph(
        [helper.make_node('Identity', ['input'], ['logits'])],
        'identity',
        [helper.make_tensor_value_info('input', TensorProto.FLOAT, shape)],
        [helper.make_tensor_value_info('logits', TensorProto.FLOAT, shape)],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid('', 13)])
    model.ir_version = 8
    onnx.checker.check_model(model)

    session = OnnxSession(model.SerializeToString())
    assert session.input_name == 'input'
    outputs = session.run(blank_tensor())
    assert list(outputs) == ['logits']
    assert outputs['logits'].shape == tuple(shape)

    session.release()
    with pytest.raises(RuntimeError):
        session.run(blank_tensor())


def test_torchscript_session():
    torch = pytest.importorskip('torch')

    class Tiny(torch.nn.Module):
        def forward(self, x):
            return torch.zeros(1, 4, 3) + x.mean()

    buffer = io.BytesIO()
    torch.jit.save(torch.jit.script(Tiny()), buffer)

    session = TorchScriptSession(buffer.getvalue(), device='cpu')
    outputs = session.run(blank_tensor())
    assert outputs['logits'].shape == (1, 4, 3)
    assert np.all(outputs['logits'] == 0)
