"""
Feature extraction configuration.

A config file is plain YAML, either flat or under a ``features`` section:

    features:
      sample_rate: 16000
      window_size: 400
      hop: 160
      fft_size: 512
      num_filters: 20
      num_coeffs: 13
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Union

import yaml

from .dsp_core.exceptions import ConfigurationError


@dataclass
class FeatureConfig:
    """Parameters of one feature-extraction setup."""
    sample_rate: int = 16000
    window_size: int = 400   # samples per frame
    hop: int = 160           # samples between frame starts
    fft_size: int = 512
    num_filters: int = 20
    num_coeffs: int = 13

    @property
    def n_bins(self) -> int:
        return self.fft_size // 2 + 1

    def validate(self) -> 'FeatureConfig':
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{f.name} must be an integer, got {value!r}")
            if value <= 0:
                raise ConfigurationError(f"{f.name} must be positive, got {value}")
        if self.num_coeffs > self.num_filters:
            raise ConfigurationError(
                f"num_coeffs ({self.num_coeffs}) cannot exceed num_filters ({self.num_filters})"
            )
        return self

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'FeatureConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data).validate()


def load_config(config_path: Union[str, Path]) -> FeatureConfig:
    """Load a FeatureConfig from a YAML file."""
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path}: expected a mapping, got {type(data).__name__}")

    section = data.get('features', data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"{config_path}: 'features' must be a mapping")
    return FeatureConfig.from_dict(section)
