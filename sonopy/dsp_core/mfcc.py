"""
Power spectrogram, log-mel spectrogram and MFCC extraction.

Frames are plain rectangular chops of the input buffer (no window
function, no centering). For each frame the one-sided power spectrum is
``(re**2 + im**2) / fft_size``; the mel spectrogram is the log of that
spectrum projected onto the mel filter bank, and the MFCCs are the
orthonormal DCT-II of each log-mel row with coefficient 0 replaced by the
log of the frame's total power.

The filter bank depends only on (sample_rate, num_filters, fft_size), so
a FeaturePipeline builds it once and reuses it for every call.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .dct import dct
from .exceptions import ConfigurationError, ShapeMismatchError
from .fft import rfft
from .linmath import safe_log
from .mel import filterbanks

logger = logging.getLogger(__name__)


def chop_array(array: np.ndarray, window_size: int, hop: int) -> np.ndarray:
    """
    Slide a window over the last axis.

    chop_array([1, 2, 3], 2, 1) -> [[1, 2], [2, 3]]

    Returns a read-only view of shape ((len - window_size) // hop + 1, window_size),
    or an empty (0, window_size) array if ``array`` is shorter than one window.
    """
    array = np.asarray(array)
    if window_size <= 0 or hop <= 0:
        raise ConfigurationError(f"window_size and hop must be positive, got {window_size} and {hop}")
    if len(array) < window_size:
        return np.empty((0, window_size), dtype=array.dtype)
    windows = np.lib.stride_tricks.sliding_window_view(array, window_size)
    return windows[::hop]


def power_spec(audio: np.ndarray, window_size: int, hop: int, fft_size: int) -> np.ndarray:
    """
    Calculate the power spectrogram.

    Parameters
    ----------
    audio : np.ndarray
        Mono samples
    window_size : int
        Frame length W in samples
    hop : int
        Distance between frame starts in samples
    fft_size : int
        Transform size; frames are zero-padded (or truncated) to it

    Returns
    -------
    np.ndarray
        float32 array of shape (n_frames, fft_size // 2 + 1) with
        n_frames = (len(audio) - W) // hop + 1

    Raises
    ------
    ConfigurationError
        If ``audio`` is shorter than one window or a size is not positive
    """
    audio = np.asarray(audio, dtype=np.float32)
    if audio.ndim != 1:
        raise ValueError(f"Input must be 1D, got shape {audio.shape}")
    if fft_size <= 0:
        raise ConfigurationError(f"fft_size must be positive, got {fft_size}")

    frames = chop_array(audio, window_size, hop)
    if len(frames) == 0:
        raise ConfigurationError(
            f"Audio of {len(audio)} samples is shorter than one window of {window_size}"
        )

    real, imag = rfft(frames, fft_size)
    return ((real * real + imag * imag) / np.float32(fft_size)).astype(np.float32, copy=False)


def _dot(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Matrix product that refuses to broadcast over mismatched inner dimensions."""
    if a.shape[-1] != b.shape[0]:
        raise ShapeMismatchError(
            f"Cannot multiply {a.shape} by {b.shape}: inner dimensions {a.shape[-1]} != {b.shape[0]}"
        )
    return np.dot(a, b)


@dataclass(frozen=True)
class FeatureParts:
    """Every intermediate stage of one MFCC computation."""
    powers: np.ndarray       # (n_frames, fft_size // 2 + 1)
    filterbanks: np.ndarray  # (num_filters, fft_size // 2 + 1)
    mels: np.ndarray         # (n_frames, num_filters), log-compressed
    mfccs: np.ndarray        # (n_frames, num_coeffs)


class FeaturePipeline:
    """
    Mel / MFCC feature extractor for one fixed configuration.

    Args:
        sample_rate: Audio sampling rate in Hz
        window_size: Frame length in samples
        hop: Frame step in samples
        fft_size: FFT size; spectra have fft_size // 2 + 1 bins
        num_filters: Number of mel filters

    The filter bank is computed in the constructor and never mutated, so
    one instance can be shared between threads.

    Examples
    --------
    >>> pipeline = FeaturePipeline(16000, 400, 160, 512, 20)
    >>> pipeline.mfcc_spec(np.zeros(1600, dtype=np.float32), 13).shape
    (8, 13)
    """

    def __init__(self, sample_rate: int, window_size: int, hop: int, fft_size: int, num_filters: int):
        if window_size <= 0 or hop <= 0:
            raise ConfigurationError(f"window_size and hop must be positive, got {window_size} and {hop}")
        if fft_size <= 0:
            raise ConfigurationError(f"fft_size must be positive, got {fft_size}")

        self.sample_rate = sample_rate
        self.window_size = window_size
        self.hop = hop
        self.fft_size = fft_size
        self.num_filters = num_filters

        self._filterbanks = filterbanks(sample_rate, num_filters, self.n_bins)
        if self._filterbanks.shape != (num_filters, self.n_bins):
            raise ConfigurationError(
                f"Filter bank shape {self._filterbanks.shape} does not match "
                f"({num_filters}, {self.n_bins})"
            )
        # Contracted against power spectra in every call
        self._filterbanks_t = self._filterbanks.T

        logger.debug("FeaturePipeline ready: %r", self)

    @classmethod
    def from_config(cls, config) -> 'FeaturePipeline':
        """Build a pipeline from a FeatureConfig (or anything with the same fields)."""
        return cls(
            sample_rate=config.sample_rate,
            window_size=config.window_size,
            hop=config.hop,
            fft_size=config.fft_size,
            num_filters=config.num_filters,
        )

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(sample_rate={self.sample_rate}, "
                f"window_size={self.window_size}, hop={self.hop}, "
                f"fft_size={self.fft_size}, num_filters={self.num_filters})")

    @property
    def n_bins(self) -> int:
        return self.fft_size // 2 + 1

    @property
    def filterbanks(self) -> np.ndarray:
        return self._filterbanks

    def power_spec(self, audio: np.ndarray) -> np.ndarray:
        return power_spec(audio, self.window_size, self.hop, self.fft_size)

    def _log_mels(self, powers: np.ndarray) -> np.ndarray:
        return safe_log(_dot(powers, self._filterbanks_t))

    def _mfccs(self, powers: np.ndarray, mels: np.ndarray, num_coeffs: int) -> np.ndarray:
        mfccs = dct(mels, orthonormal=True)[:, :num_coeffs].copy()
        # Coefficient 0 carries the frame energy instead of the DCT term
        mfccs[:, 0] = safe_log(powers.sum(axis=1))
        return mfccs

    def _check_num_coeffs(self, num_coeffs: int) -> None:
        if not 1 <= num_coeffs <= self.num_filters:
            raise ConfigurationError(
                f"num_coeffs must be in [1, {self.num_filters}], got {num_coeffs}"
            )

    def mel_spec(self, audio: np.ndarray) -> np.ndarray:
        """
        Calculate the log-mel spectrogram (condensed spectrogram).

        Returns
        -------
        np.ndarray
            float32 array of shape (n_frames, num_filters)
        """
        return self._log_mels(self.power_spec(audio))

    def mfcc_spec(self, audio: np.ndarray, num_coeffs: int) -> np.ndarray:
        """
        Calculate the mel frequency cepstrum coefficient spectrogram.

        Returns
        -------
        np.ndarray
            float32 array of shape (n_frames, num_coeffs); column 0 is the
            log of each frame's total power

        Raises
        ------
        ConfigurationError
            If num_coeffs is outside [1, num_filters] or the audio is
            shorter than one window
        """
        self._check_num_coeffs(num_coeffs)
        powers = self.power_spec(audio)
        return self._mfccs(powers, self._log_mels(powers), num_coeffs)

    def mfcc_parts(self, audio: np.ndarray, num_coeffs: int) -> FeatureParts:
        """Same as mfcc_spec, but also return the intermediate stages for inspection."""
        self._check_num_coeffs(num_coeffs)
        powers = self.power_spec(audio)
        mels = self._log_mels(powers)
        return FeatureParts(
            powers=powers,
            filterbanks=self._filterbanks,
            mels=mels,
            mfccs=self._mfccs(powers, mels, num_coeffs),
        )


def mel_spec(
    audio: np.ndarray,
    sample_rate: int,
    window_stride: Tuple[int, int] = (160, 80),
    fft_size: int = 512,
    num_filt: int = 20
) -> np.ndarray:
    """
    One-off log-mel spectrogram.

    Builds a throwaway FeaturePipeline; keep a pipeline around instead
    when extracting features repeatedly with the same settings.
    """
    window_size, hop = window_stride
    return FeaturePipeline(sample_rate, window_size, hop, fft_size, num_filt).mel_spec(audio)


def mfcc_spec(
    audio: np.ndarray,
    sample_rate: int,
    window_stride: Tuple[int, int] = (160, 80),
    fft_size: int = 512,
    num_filt: int = 20,
    num_coeffs: int = 13
) -> np.ndarray:
    """One-off MFCC spectrogram, see mel_spec."""
    window_size, hop = window_stride
    return FeaturePipeline(sample_rate, window_size, hop, fft_size, num_filt).mfcc_spec(audio, num_coeffs)
