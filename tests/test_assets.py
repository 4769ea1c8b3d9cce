"""Tests for model/charset asset loading."""
import pytest
import requests

from monocr import assets as assets_module
from monocr.assets import AssetError, AssetSource, fetch_bytes, is_url
from monocr.config import OCRConfig as cfg


class FakeResponse:
    def __init__(self, content=b'', status_code=200, reason='OK'):
        self.content = content
        self.status_code = status_code
        self.reason = reason

    @property
    def ok(self):
        return self.status_code < 400


def test_is_url():
    assert is_url('https://example.com/model.onnx')
    assert is_url('HTTP://example.com/x')
    assert not is_url('models/model.onnx')


def test_local_files(assets_dir):
    source = AssetSource(assets_dir / 'model.bin', assets_dir / 'charset.txt')
    assert source.load_model() == b'fake-model'
    assert source.load_charset() == 'AB\n'


def test_missing_file_raises(tmp_path):
    with pytest.raises(AssetError):
        fetch_bytes(tmp_path / 'nope.onnx')


def test_charset_must_be_utf8(tmp_path):
    path = tmp_path / 'charset.txt'
    path.write_bytes(b'\xff\xfe\xfa')
    with pytest.raises(AssetError):
        AssetSource(charset_ref=path).load_charset()


def test_url_download(monkeypatch):
    calls = []

    def fake_get(url, **kwargs):
        calls.append((url, kwargs))
        return FakeResponse(b'onnx-bytes')

    monkeypatch.setattr(assets_module.requests, 'get', fake_get)
    assert fetch_bytes('https://example.com/monocr.onnx', timeout=5) == b'onnx-bytes'

    url, kwargs = calls[0]
    assert url == 'https://example.com/monocr.onnx'
    assert kwargs['headers']['User-Agent'] == cfg.USER_AGENT
    assert kwargs['timeout'] == 5
    assert kwargs['allow_redirects'] is True


def test_http_error_status(monkeypatch):
    monkeypatch.setattr(assets_module.requests, 'get', lambda url, **kw: FakeResponse(status_code=404, reason='Not Found'))
    with pytest.raises(AssetError, match='404'):
        fetch_bytes('https://example.com/missing.onnx')


def test_network_error(monkeypatch):
    def fail(url, **kwargs):
        raise requests.ConnectionError('unreachable')

    monkeypatch.setattr(assets_module.requests, 'get', fail)
    with pytest.raises(AssetError, match='unreachable'):
        fetch_bytes('https://example.com/monocr.onnx')


def test_missing_charset_reference():
    with pytest.raises(AssetError, match='MONOCR_CHARSET'):
        AssetSource(charset_ref='').load_charset()
