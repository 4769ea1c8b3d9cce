"""Tests for the synthetic page generator."""
import json

import numpy as np
import pytest

from monocr.data.synth_pages import PageSynthesizer
from monocr.segmentation import segment_lines


@pytest.mark.parametrize('seed', [0, 1, 7])
def test_block_pages_segment_into_their_lines(seed):
    sample = PageSynthesizer(seed=seed).generate(num_lines=4, width=320, mode='blocks')

    assert sample.image.shape[2] == 3 and sample.image.dtype == np.uint8
    segments = segment_lines(sample.image)
    assert len(segments) == 4
    for seg, (top, bottom) in zip(segments, sample.lines):
        assert seg.y <= top and seg.bottom >= bottom


def test_same_seed_same_page():
    a = PageSynthesizer(seed=3).generate(num_lines=3, noise=2.0)
    b = PageSynthesizer(seed=3).generate(num_lines=3, noise=2.0)
    assert np.array_equal(a.image, b.image)
    assert a.texts == b.texts


def test_fixed_height_too_small():
    with pytest.raises(ValueError):
        PageSynthesizer(seed=0).generate(num_lines=10, height=50)


def test_unknown_mode():
    with pytest.raises(ValueError):
        PageSynthesizer(seed=0).generate(mode='handwriting')


def test_font_mode_renders():
    sample = PageSynthesizer(seed=0).generate(num_lines=2, mode='font', script='latin', line_height=20)
    assert len(sample.texts) == 2
    assert sample.image.min() < 128
    assert sample.to_png_bytes().startswith(b'\x89PNG')


def test_generate_dataset(tmp_path):
    PageSynthesizer(seed=0).generate_dataset(str(tmp_path), n_samples=2, num_lines=3, width=200)

    annotations = json.loads((tmp_path / 'annotations.json').read_text(encoding='utf-8'))
    assert len(annotations) == 2
    assert all(len(a['lines']) == 3 for a in annotations)
    assert (tmp_path / annotations[0]['image']).exists()
