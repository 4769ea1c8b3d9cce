"""Synthetic data for MonOCR tests and benchmarks."""
from .synth_pages import PageSample, PageSynthesizer

__all__ = ['PageSample', 'PageSynthesizer']
