"""
Real-input FFT using Numba JIT

Provides the one-sided spectrum the feature pipeline needs:

    rfft(frame, fft_size) -> (real, imag), each of length fft_size // 2 + 1

Frames shorter than ``fft_size`` are zero-padded; longer frames are
truncated to their first ``fft_size`` samples (the numpy.fft.rfft(x, n)
convention).

Power-of-two sizes run an iterative radix-2 Cooley-Tukey transform,
everything else falls back to a direct DFT. Stacks of frames run in a
single compiled loop; the kernels hold no state and may be called from
several threads at once.
"""

import math

import numpy as np
from numba import jit


@jit(nopython=True, cache=True)
def _radix2(buf: np.ndarray) -> np.ndarray:
    """In-place iterative radix-2 DIT FFT, len(buf) must be a power of 2."""
    N = buf.shape[0]

    # Bit-reversal permutation
    j = 0
    for i in range(1, N):
        bit = N >> 1
        while j & bit:
            j ^= bit
            bit >>= 1
        j ^= bit
        if i < j:
            tmp = buf[i]
            buf[i] = buf[j]
            buf[j] = tmp

    # Butterflies for stage sizes 2, 4, ..., N
    size = 2
    while size <= N:
        half = size // 2
        theta = -2.0 * math.pi / size
        for k in range(half):
            # Twiddles taken directly from cos/sin, no recurrence drift
            w = math.cos(theta * k) + 1j * math.sin(theta * k)
            for start in range(0, N, size):
                even = buf[start + k]
                odd = buf[start + k + half] * w
                buf[start + k] = even + odd
                buf[start + k + half] = even - odd
        size *= 2

    return buf


@jit(nopython=True, cache=True)
def _dft(buf: np.ndarray) -> np.ndarray:
    """Direct DFT for lengths that are not a power of 2."""
    N = buf.shape[0]
    out = np.empty(N, dtype=np.complex128)
    for k in range(N):
        acc = 0j
        for n in range(N):
            # Reduce k*n modulo N to keep the angle small
            theta = -2.0 * math.pi * ((k * n) % N) / N
            acc += buf[n] * (math.cos(theta) + 1j * math.sin(theta))
        out[k] = acc
    return out


@jit(nopython=True, cache=True)
def _rfft_frames(frames: np.ndarray, n_bins: int) -> np.ndarray:
    """
    One-sided spectra of a (n_frames, fft_size) complex128 stack.

    Returns
    -------
    np.ndarray
        complex128 array of shape (n_frames, n_bins)
    """
    n_frames, N = frames.shape
    is_pow2 = N > 0 and (N & (N - 1)) == 0
    out = np.empty((n_frames, n_bins), dtype=np.complex128)

    for i in range(n_frames):
        buf = frames[i].copy()
        if is_pow2:
            spectrum = _radix2(buf)
        else:
            spectrum = _dft(buf)
        out[i] = spectrum[:n_bins]

    return out


def rfft(frame: np.ndarray, fft_size: int):
    """
    Compute the one-sided FFT of a real frame (or a stack of frames).

    Parameters
    ----------
    frame : np.ndarray
        Real samples, shape (W,) or (n_frames, W)
    fft_size : int
        Transform size; the frame is zero-padded or truncated to it

    Returns
    -------
    tuple of np.ndarray
        (real, imag) float32 arrays with last axis fft_size // 2 + 1

    Examples
    --------
    >>> real, imag = rfft(np.ones(400, dtype=np.float32), 512)
    >>> real.shape
    (257,)
    """
    x = np.asarray(frame, dtype=np.float32)
    if fft_size < 1:
        raise ValueError(f"fft_size must be positive, got {fft_size}")
    if x.ndim not in (1, 2):
        raise ValueError(f"Input must be 1D or 2D, got shape {x.shape}")

    single = x.ndim == 1
    if single:
        x = x[np.newaxis, :]

    width = x.shape[-1]
    if width < fft_size:
        x = np.pad(x, ((0, 0), (0, fft_size - width)), mode='constant')
    elif width > fft_size:
        x = x[:, :fft_size]

    spectrum = _rfft_frames(np.ascontiguousarray(x, dtype=np.complex128), fft_size // 2 + 1)

    real = spectrum.real.astype(np.float32)
    imag = spectrum.imag.astype(np.float32)

    if single:
        return real[0], imag[0]
    return real, imag
