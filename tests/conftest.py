"""Shared pytest setup for MonOCR tests."""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import band_image, png_bytes  # noqa: E402


@pytest.fixture
def two_line_png():
    """100x50 white page with dark bands on rows 20-31 and 60-71."""
    return png_bytes(band_image(100, 50, [(20, 32), (60, 72)]))


@pytest.fixture
def blank_png():
    return png_bytes(band_image(40, 30, []))


@pytest.fixture
def assets_dir(tmp_path):
    (tmp_path / 'model.bin').write_bytes(b'fake-model')
    (tmp_path / 'charset.txt').write_text('AB\n', encoding='utf-8')
    return tmp_path
