"""
DSP Core Module - Mel Spectrogram and MFCC Front End

Hand-written feature extraction for keyword-spotting style models. All
stages work in float32 and reproduce a fixed reference bit layout:
rectangular frames, one-sided power spectra, a grid-corrected triangular
mel filter bank, log compression and an orthonormal DCT-II.

Modules:
    - linmath: evenly spaced sequences, guarded logarithm
    - dct: Type-II Discrete Cosine Transform
    - fft: real-input FFT (Numba JIT)
    - mel: mel scale conversion and filter bank construction
    - mfcc: power / mel / MFCC spectrograms and the cached-filter-bank pipeline
"""

from .exceptions import SonopyError, ConfigurationError, ShapeMismatchError
from .linmath import lin_space, safe_log
from .dct import dct
from .fft import rfft
from .mel import hertz_to_mels, mel_to_hertz, correct_grid, grid_indices, filterbanks
from .mfcc import (
    chop_array,
    power_spec,
    mel_spec,
    mfcc_spec,
    FeaturePipeline,
    FeatureParts,
)

__all__ = [
    # Errors
    'SonopyError',
    'ConfigurationError',
    'ShapeMismatchError',
    # Math helpers
    'lin_space',
    'safe_log',
    'dct',
    'rfft',
    # Filter bank
    'hertz_to_mels',
    'mel_to_hertz',
    'correct_grid',
    'grid_indices',
    'filterbanks',
    # Features
    'chop_array',
    'power_spec',
    'mel_spec',
    'mfcc_spec',
    'FeaturePipeline',
    'FeatureParts',
]
