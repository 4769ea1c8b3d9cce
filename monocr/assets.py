"""
Model and charset asset loading.

A reference is either a local path or an http(s) URL. URLs are fetched
with `requests` (redirects followed); no caching or retry is done here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import requests

from .config import OCRConfig as cfg

logger = logging.getLogger(__name__)

AssetRef = Union[str, Path]


class AssetError(Exception):
    pass


def is_url(ref: AssetRef) -> bool:
    return isinstance(ref, str) and ref.lower().startswith(("http://", "https://"))


def fetch_bytes(ref: AssetRef, timeout: float = cfg.DOWNLOAD_TIMEOUT_S) -> bytes:
    """Read a local file or download a URL into memory."""
    if is_url(ref):
        logger.info("Downloading %s", ref)
        try:
            response = requests.get(
                ref,
                headers={"User-Agent": cfg.USER_AGENT},
                timeout=timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise AssetError(f"Failed to fetch {ref}: {e}") from e
        if not response.ok:
            raise AssetError(f"Failed to fetch {ref}: {response.status_code} {response.reason}")
        return response.content

    path = Path(ref).expanduser()
    if not path.is_file():
        raise AssetError(f"Asset not found: {path}")
    try:
        return path.read_bytes()
    except OSError as e:
        raise AssetError(f"Failed to read {path}: {e}") from e


@dataclass(frozen=True)
class AssetSource:
    """Where the worker finds the model blob and the charset document."""

    model_ref: AssetRef = cfg.MODEL_REF
    charset_ref: AssetRef = cfg.CHARSET_REF
    timeout: float = cfg.DOWNLOAD_TIMEOUT_S

    def load_model(self) -> bytes:
        data = fetch_bytes(self.model_ref, self.timeout)
        logger.info("Loaded model: %.1f MB", len(data) / (1024 ** 2))
        return data

    def load_charset(self) -> str:
        if not self.charset_ref:
            raise AssetError("No charset configured: set MONOCR_CHARSET or pass a charset path")
        data = fetch_bytes(self.charset_ref, self.timeout)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise AssetError(f"Charset is not valid UTF-8: {self.charset_ref}") from e
