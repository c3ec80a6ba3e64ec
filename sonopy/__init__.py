"""
sonopy - audio feature extraction (power / mel / MFCC spectrograms)
"""

import logging

from .config import FeatureConfig, load_config
from .dsp_core import (
    SonopyError,
    ConfigurationError,
    ShapeMismatchError,
    filterbanks,
    power_spec,
    mel_spec,
    mfcc_spec,
    FeaturePipeline,
    FeatureParts,
)

__all__ = [
    'FeatureConfig',
    'load_config',
    'SonopyError',
    'ConfigurationError',
    'ShapeMismatchError',
    'filterbanks',
    'power_spec',
    'mel_spec',
    'mfcc_spec',
    'FeaturePipeline',
    'FeatureParts',
]

__version__ = '1.0.0'

logging.getLogger(__name__).addHandler(logging.NullHandler())
