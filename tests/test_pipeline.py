"""
Tests for the power / mel / MFCC feature pipeline, its configuration
and logging setup.

Run:
    pytest tests/test_pipeline.py -v
"""

import sys
import os
import logging
from concurrent.futures import ThreadPoolExecutor

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from scipy.fft import rfft as scipy_rfft
from scipy.fftpack import dct as scipy_dct

from sonopy import FeatureConfig, load_config
from sonopy.dsp_core import (
    chop_array,
    power_spec,
    mel_spec,
    mfcc_spec,
    safe_log,
    filterbanks,
    FeaturePipeline,
    ConfigurationError,
    ShapeMismatchError,
)
from sonopy.dsp_core.mfcc import _dot
from sonopy.utils.logging import setup_logging, get_logger

PROJECT_ROOT = os.path.join(os.path.dirname(__file__), '..')

SR, WIN, HOP, NFFT, NFILT = 16000, 400, 160, 512, 20


@pytest.fixture(scope='module')
def pipeline():
    return FeaturePipeline(SR, WIN, HOP, NFFT, NFILT)


@pytest.fixture
def audio():
    rng = np.random.default_rng(1234)
    return rng.standard_normal(SR // 2).astype(np.float32)


class TestChopArray:
    """Test suite for frame segmentation."""

    def test_example(self):
        """Test the chop_array([1, 2, 3], 2, 1) example."""
        np.testing.assert_array_equal(chop_array(np.array([1, 2, 3]), 2, 1), [[1, 2], [2, 3]])

    def test_frame_count(self):
        """Test frame count and frame contents for overlapping windows."""
        frames = chop_array(np.arange(1600), 400, 160)
        assert frames.shape == (8, 400)
        np.testing.assert_array_equal(frames[3], np.arange(480, 880))

    def test_short_input(self):
        """Test input shorter than one window gives no frames."""
        assert chop_array(np.arange(10), 20, 5).shape == (0, 20)

    def test_invalid_sizes(self):
        """Test non-positive window and hop are rejected."""
        with pytest.raises(ConfigurationError):
            chop_array(np.arange(10), 0, 1)
        with pytest.raises(ConfigurationError):
            chop_array(np.arange(10), 4, 0)


class TestPowerSpec:
    """Test suite for the power spectrogram."""

    def test_one_frame(self):
        """Test audio of exactly one window gives one frame."""
        powers = power_spec(np.random.randn(WIN).astype(np.float32), WIN, HOP, NFFT)
        assert powers.shape == (1, NFFT // 2 + 1)
        assert powers.dtype == np.float32

    def test_two_frames(self):
        """Test one extra hop gives a second frame."""
        powers = power_spec(np.random.randn(WIN + HOP).astype(np.float32), WIN, HOP, NFFT)
        assert powers.shape == (2, NFFT // 2 + 1)

    def test_matches_reference(self, audio):
        """Test power spectra against scipy's rfft."""
        powers = power_spec(audio, WIN, HOP, NFFT)
        n_frames = (len(audio) - WIN) // HOP + 1
        assert powers.shape[0] == n_frames

        for i in (0, n_frames // 2, n_frames - 1):
            frame = audio[i * HOP:i * HOP + WIN].astype(np.float64)
            ref = np.abs(scipy_rfft(frame, n=NFFT)) ** 2 / NFFT
            np.testing.assert_allclose(powers[i], ref, rtol=1e-4, atol=1e-4)

    def test_silence(self):
        """Test silence gives all-zero spectra."""
        powers = power_spec(np.zeros(1600, dtype=np.float32), WIN, HOP, NFFT)
        assert powers.shape == (8, 257)
        assert not powers.any()

    def test_audio_shorter_than_window(self):
        """Test audio shorter than one window is rejected."""
        with pytest.raises(ConfigurationError):
            power_spec(np.zeros(WIN - 1, dtype=np.float32), WIN, HOP, NFFT)

    def test_rejects_multichannel(self):
        """Test 2D audio is rejected."""
        with pytest.raises(ValueError):
            power_spec(np.zeros((2, 1600), dtype=np.float32), WIN, HOP, NFFT)


class TestFeaturePipeline:
    """Test suite for the cached-filter-bank pipeline."""

    def test_silence_end_to_end(self, pipeline):
        """Test MFCCs of 1600 samples of silence."""
        silence = np.zeros(1600, dtype=np.float32)

        mfccs = pipeline.mfcc_spec(silence, 13)
        floor = safe_log(0.0)

        print(f"\n[MFCC silence] shape={mfccs.shape} floor={floor:.4f}")
        assert mfccs.shape == (8, 13)
        assert mfccs.dtype == np.float32
        np.testing.assert_array_equal(mfccs[:, 0], np.full(8, floor, dtype=np.float32))
        assert np.all(np.isfinite(mfccs))

    def test_mel_spec(self, pipeline, audio):
        """Test the log-mel spectrogram against a direct projection."""
        mels = pipeline.mel_spec(audio)
        powers = power_spec(audio, WIN, HOP, NFFT)
        expected = safe_log(np.dot(powers, filterbanks(SR, NFILT, NFFT // 2 + 1).T))
        assert mels.shape == (powers.shape[0], NFILT)
        np.testing.assert_allclose(mels, expected, rtol=1e-6, atol=1e-6)

    @pytest.mark.parametrize('num_coeffs', [1, 5, 13, 20])
    def test_energy_coefficient(self, pipeline, audio, num_coeffs):
        """Test coefficient 0 is the log of each frame's total power."""
        mfccs = pipeline.mfcc_spec(audio, num_coeffs)
        powers = power_spec(audio, WIN, HOP, NFFT)
        assert mfccs.shape == (powers.shape[0], num_coeffs)
        np.testing.assert_allclose(mfccs[:, 0], safe_log(powers.sum(axis=1)), rtol=1e-6)

    def test_cepstral_coefficients_match_scipy(self, pipeline, audio):
        """Test the remaining coefficients against scipy's orthonormal DCT."""
        mfccs = pipeline.mfcc_spec(audio, 13)
        mels = pipeline.mel_spec(audio).astype(np.float64)
        ref = scipy_dct(mels, type=2, norm='ortho', axis=-1)[:, :13]
        error = np.abs(mfccs[:, 1:] - ref[:, 1:])
        print(f"\n[MFCC vs scipy DCT] Max error: {error.max():.2e}")
        np.testing.assert_allclose(mfccs[:, 1:], ref[:, 1:], rtol=1e-4, atol=1e-3)

    def test_num_coeffs_out_of_range(self, pipeline, audio):
        """Test num_coeffs outside [1, num_filters] is rejected."""
        with pytest.raises(ConfigurationError):
            pipeline.mfcc_spec(audio, 0)
        with pytest.raises(ConfigurationError):
            pipeline.mfcc_spec(audio, NFILT + 1)

    def test_audio_shorter_than_window(self, pipeline):
        """Test MFCCs of audio shorter than one window are rejected."""
        with pytest.raises(ConfigurationError):
            pipeline.mfcc_spec(np.zeros(WIN - 1, dtype=np.float32), 13)

    def test_filterbank_is_built_once(self, pipeline, audio):
        """Test the filter bank is built once and reused."""
        fb = pipeline.filterbanks
        pipeline.mel_spec(audio)
        pipeline.mfcc_spec(audio, 13)
        assert pipeline.filterbanks is fb
        assert fb.shape == (NFILT, NFFT // 2 + 1)
        assert not fb.flags.writeable

    def test_instances_do_not_share_filterbanks(self):
        """Test each instance owns the filter bank of its own configuration."""
        a = FeaturePipeline(SR, WIN, HOP, NFFT, 20)
        b = FeaturePipeline(SR, WIN, HOP, 1024, 40)
        assert a.filterbanks.shape == (20, 257)
        assert b.filterbanks.shape == (40, 513)

    def test_invalid_construction(self):
        """Test bad constructor arguments are rejected."""
        with pytest.raises(ConfigurationError):
            FeaturePipeline(SR, WIN, HOP, NFFT, 0)
        with pytest.raises(ConfigurationError):
            FeaturePipeline(SR, 0, HOP, NFFT, NFILT)
        with pytest.raises(ConfigurationError):
            FeaturePipeline(SR, WIN, HOP, 0, NFILT)

    def test_mfcc_parts(self, pipeline, audio):
        """Test mfcc_parts returns the same stages as the individual calls."""
        parts = pipeline.mfcc_parts(audio, 13)
        assert parts.filterbanks is pipeline.filterbanks
        np.testing.assert_array_equal(parts.powers, pipeline.power_spec(audio))
        np.testing.assert_array_equal(parts.mels, pipeline.mel_spec(audio))
        np.testing.assert_array_equal(parts.mfccs, pipeline.mfcc_spec(audio, 13))

    def test_functional_api(self, pipeline, audio):
        """Test the one-off functions agree with a pipeline."""
        np.testing.assert_array_equal(
            mfcc_spec(audio, SR, (WIN, HOP), NFFT, NFILT, 13),
            pipeline.mfcc_spec(audio, 13),
        )
        np.testing.assert_array_equal(
            mel_spec(audio, SR, (WIN, HOP), NFFT, NFILT),
            pipeline.mel_spec(audio),
        )

    def test_from_config(self, audio):
        """Test building a pipeline from a FeatureConfig."""
        config = FeatureConfig(sample_rate=SR, window_size=WIN, hop=HOP, fft_size=NFFT, num_filters=NFILT)
        pipeline = FeaturePipeline.from_config(config)
        assert pipeline.n_bins == config.n_bins
        assert "num_filters=20" in repr(pipeline)

    def test_concurrent_use(self, pipeline):
        """Test one pipeline shared between threads."""
        rng = np.random.default_rng(7)
        signals = [rng.standard_normal(4000).astype(np.float32) for _ in range(8)]
        expected = [pipeline.mfcc_spec(s, 13) for s in signals]

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda s: pipeline.mfcc_spec(s, 13), signals))

        for got, want in zip(results, expected):
            np.testing.assert_array_equal(got, want)

    def test_dot_rejects_mismatched_shapes(self):
        """Test mismatched matrix products are rejected."""
        with pytest.raises(ShapeMismatchError):
            _dot(np.ones((2, 3), dtype=np.float32), np.ones((4, 5), dtype=np.float32))


class TestConfig:
    """Test suite for FeatureConfig and YAML loading."""

    def test_defaults(self):
        """Test default configuration values."""
        config = FeatureConfig().validate()
        assert config.to_dict() == {
            'sample_rate': 16000,
            'window_size': 400,
            'hop': 160,
            'fft_size': 512,
            'num_filters': 20,
            'num_coeffs': 13,
        }

    def test_unknown_key(self):
        """Test unknown configuration keys are rejected."""
        with pytest.raises(ConfigurationError):
            FeatureConfig.from_dict({'sample_rate': 16000, 'window': 400})

    def test_invalid_values(self):
        """Test invalid configuration values are rejected."""
        with pytest.raises(ConfigurationError):
            FeatureConfig.from_dict({'num_coeffs': 30, 'num_filters': 20})
        with pytest.raises(ConfigurationError):
            FeatureConfig.from_dict({'hop': 0})
        with pytest.raises(ConfigurationError):
            FeatureConfig.from_dict({'fft_size': '512'})

    def test_load_nested(self, tmp_path):
        """Test loading a config nested under features."""
        path = tmp_path / 'features.yaml'
        path.write_text("features:\n  sample_rate: 8000\n  num_filters: 26\n")
        config = load_config(path)
        assert config.sample_rate == 8000
        assert config.num_filters == 26
        assert config.hop == 160

    def test_load_flat(self, tmp_path):
        """Test loading a flat config."""
        path = tmp_path / 'flat.yaml'
        path.write_text("fft_size: 1024\nnum_coeffs: 12\n")
        config = load_config(path)
        assert config.fft_size == 1024
        assert config.n_bins == 513

    def test_load_rejects_non_mapping(self, tmp_path):
        """Test a YAML list is rejected."""
        path = tmp_path / 'list.yaml'
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_shipped_config(self):
        """Test the shipped configs/features.yaml matches the defaults."""
        config = load_config(os.path.join(PROJECT_ROOT, 'configs', 'features.yaml'))
        assert config == FeatureConfig()


class TestLogging:
    """Test suite for logging setup."""

    def test_file_handler(self, tmp_path):
        """Test messages reach the log file."""
        log_file = tmp_path / 'logs' / 'sonopy.log'
        logger = setup_logging(log_file=str(log_file), level=logging.DEBUG, name='sonopy.test.file')
        logger.debug("filter bank ready")
        for handler in logger.handlers:
            handler.flush()

        text = log_file.read_text(encoding='utf-8')
        assert "filter bank ready" in text
        assert "| DEBUG    | sonopy.test.file |" in text

    def test_no_duplicate_handlers(self):
        """Test repeated setup does not stack handlers."""
        setup_logging(name='sonopy.test.dup')
        logger = setup_logging(name='sonopy.test.dup')
        assert len(logger.handlers) == 1
        assert get_logger('sonopy.test.dup') is logger

    def test_get_logger_namespace(self):
        """Test loggers are placed under the sonopy package logger."""
        assert get_logger().name == 'sonopy'
        assert get_logger('bench').name == 'sonopy.bench'
        assert get_logger('sonopy.dsp_core.mel') is logging.getLogger('sonopy.dsp_core.mel')

    def test_package_messages_reach_root_setup(self, tmp_path):
        """Test default setup collects filter-bank messages from the library modules."""
        root = logging.getLogger('sonopy')
        saved_handlers, saved_level = list(root.handlers), root.level
        log_file = tmp_path / 'sonopy.log'
        try:
            logger = setup_logging(log_file=str(log_file), level=logging.DEBUG)
            assert logger is root
            FeaturePipeline(SR, WIN, HOP, NFFT, NFILT)
            for handler in logger.handlers:
                handler.flush()
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)

        text = log_file.read_text(encoding='utf-8')
        assert "| sonopy.dsp_core.mel | Built 20 mel filters over 257 bins at 16000 Hz" in text
