"""
Type-II Discrete Cosine Transform

    y[k] = 2 * sum_{n=0}^{N-1} x[n] * cos(pi * k * (2n + 1) / (2N)),  0 <= k < N

With ``orthonormal=True`` y[0] is scaled by sqrt(1 / (4N)) and y[k>0] by
sqrt(1 / (2N)), which is the ``norm='ortho'`` convention of
scipy.fftpack.dct. Downstream models are trained against that reference,
so the cosine table is built with the exact float64 cosine and only the
result is cast to float32.
"""

import numpy as np


def _cosine_table(N: int) -> np.ndarray:
    n = np.arange(N, dtype=np.float64)
    k = np.arange(N, dtype=np.float64)[:, np.newaxis]
    return np.cos(np.pi * k * (2.0 * n + 1.0) / (2.0 * N))


def dct(x: np.ndarray, orthonormal: bool = False) -> np.ndarray:
    """
    DCT-II along the last axis.

    A 1D input is transformed as a single sequence; a 2D input is
    transformed row by row, which is how MFCCs are taken from a
    log-mel spectrogram of shape (n_frames, n_filters).

    Parameters
    ----------
    x : np.ndarray
        Input sequence(s), last axis of length N
    orthonormal : bool
        Apply the orthonormal scaling

    Returns
    -------
    np.ndarray
        float32 array with the same shape as ``x``
    """
    x = np.asarray(x, dtype=np.float32)
    N = x.shape[-1]
    if N == 0:
        return np.empty_like(x)

    table = 2.0 * _cosine_table(N)

    if orthonormal:
        table[0] *= np.sqrt(1.0 / (4.0 * N))
        table[1:] *= np.sqrt(1.0 / (2.0 * N))

    # y[..., k] = sum_n x[..., n] * table[k, n]
    y = np.dot(x.astype(np.float64), table.T)
    return y.astype(np.float32)
