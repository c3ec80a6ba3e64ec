"""
Mel filter bank construction.

Filters are placed on a grid of ``num_filters + 2`` mel-spaced points
spanning 0 Hz .. ``sample_rate``, mapped onto FFT bin indices. Adjacent
grid points that land on the same bin would give zero-width triangles,
so the grid is pushed forward until it is strictly increasing.
"""

import logging

import numpy as np

from .exceptions import ConfigurationError
from .linmath import lin_space, safe_log

logger = logging.getLogger(__name__)


def hertz_to_mels(f: np.ndarray) -> np.ndarray:
    """Hertz to mel scale, 1127 * ln(1 + f / 700)."""
    f = np.asarray(f, dtype=np.float32)
    return np.float32(1127.0) * safe_log(np.float32(1.0) + f / np.float32(700.0))


def mel_to_hertz(mels: np.ndarray) -> np.ndarray:
    """Inverse of hertz_to_mels, 700 * (exp(mel / 1127) - 1)."""
    mels = np.asarray(mels, dtype=np.float32)
    scaled = (mels / np.float32(1127.0)).astype(np.float64)
    return (700.0 * (np.exp(scaled) - 1.0)).astype(np.float32)


def correct_grid(indices: np.ndarray) -> np.ndarray:
    """
    Push forward duplicate points to prevent useless filters.

    Each point is moved forward by the smallest amount that makes it
    strictly greater than the corrected point before it. The shift is
    carried as a running offset that relaxes back to zero once the
    original grid spreads out again:

    >>> correct_grid(np.array([0, 0, 0, 1, 9]))
    array([0, 1, 2, 3, 9])
    """
    indices = np.asarray(indices, dtype=np.int64)
    corrected = np.empty_like(indices)
    if indices.size == 0:
        return corrected

    offset = 0
    prev = int(indices[0]) - 1
    for i, val in enumerate(indices.tolist()):
        offset = max(0, offset + prev + 1 - val)
        corrected[i] = val + offset
        prev = val

    return corrected


def _check_config(sample_rate: int, num_filters: int, fft_len: int) -> None:
    if sample_rate <= 0:
        raise ConfigurationError(f"sample_rate must be positive, got {sample_rate}")
    if num_filters <= 0:
        raise ConfigurationError(f"num_filters must be positive, got {num_filters}")
    if fft_len <= 0:
        raise ConfigurationError(f"fft_len must be positive, got {fft_len}")


def grid_indices(sample_rate: int, num_filters: int, fft_len: int) -> np.ndarray:
    """
    Corrected FFT bin indices of the ``num_filters + 2`` filter grid points.

    Grid contains the left, center and right points of every filter
    triangle: mels -> hertz -> fft indices.
    """
    _check_config(sample_rate, num_filters, fft_len)

    grid_mels = lin_space(hertz_to_mels(0.0), hertz_to_mels(sample_rate), num_filters + 2, True)
    grid_hertz = mel_to_hertz(grid_mels)

    positions = grid_hertz * np.float32(fft_len) / np.float32(sample_rate)
    # One ulp nudges values sitting a rounding error below a bin boundary
    raw = np.floor(positions + np.spacing(positions)).astype(np.int64)

    corrected = correct_grid(raw)
    moved = int(np.count_nonzero(corrected != raw))
    if moved:
        logger.debug("Grid correction moved %d of %d points", moved, raw.size)
    return corrected


def filterbanks(sample_rate: int, num_filters: int, fft_len: int) -> np.ndarray:
    """
    Make a set of triangle filters focused on ``num_filters`` mel-spaced frequencies.

    Parameters
    ----------
    sample_rate : int
        Audio sampling rate in Hz
    num_filters : int
        Number of triangular filters
    fft_len : int
        Length of the one-sided spectrum, fft_size // 2 + 1

    Returns
    -------
    np.ndarray
        Read-only float32 matrix of shape (num_filters, fft_len). Row i
        rises from 0 at its left bin to 1 at its center bin, then falls
        back towards 0 at its right bin (right endpoint excluded).
    """
    indices = grid_indices(sample_rate, num_filters, fft_len)

    centers = indices[1:-1]
    if centers[-1] >= fft_len:
        raise ConfigurationError(
            f"{num_filters} filters do not fit in a spectrum of {fft_len} bins "
            f"(last filter center at bin {centers[-1]})"
        )

    banks = np.zeros((num_filters, fft_len), dtype=np.float32)
    for i in range(num_filters):
        left, middle, right = (int(v) for v in indices[i:i + 3])

        banks[i, left:middle] = lin_space(0.0, 1.0, middle - left, False)

        # Falling edge may run past the top bin; keep what fits
        stop = min(right, fft_len)
        banks[i, middle:stop] = lin_space(1.0, 0.0, right - middle, False)[:stop - middle]

    logger.debug("Built %d mel filters over %d bins at %d Hz", num_filters, fft_len, sample_rate)

    banks.setflags(write=False)
    return banks
