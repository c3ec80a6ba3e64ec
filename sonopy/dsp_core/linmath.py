import logging

import numpy as np

logger = logging.getLogger(__name__)


def lin_space(start: float, stop: float, num: int, endpoint: bool = True) -> np.ndarray:
    """
    Return ``num`` evenly spaced float32 values starting at ``start``.

    The step is ``(stop - start) / (num - 1)`` when ``endpoint`` is True and
    ``(stop - start) / num`` otherwise, so ``lin_space(0, 1, 4, False)`` gives
    ``[0, 0.25, 0.5, 0.75]``.

    Notes
    -----
    ``num == 1`` with ``endpoint=True`` divides by zero. The result is
    ``[nan]`` and a warning is logged; the value is not patched up.
    """
    if num < 0:
        raise ValueError(f"Number of samples must be non-negative, got {num}")

    start = np.float32(start)
    stop = np.float32(stop)
    divisor = np.float32(num - (1 if endpoint else 0))

    if num > 0 and divisor == 0:
        logger.warning("lin_space(%s, %s, %d, endpoint=%s) has a zero step divisor",
                       start, stop, num, endpoint)

    with np.errstate(divide='ignore', invalid='ignore'):
        step = (stop - start) / divisor
        values = step * np.arange(num, dtype=np.float32) + start

    return values.astype(np.float32, copy=False)


def safe_log(x: np.ndarray) -> np.ndarray:
    """
    Element-wise natural log that prevents errors on log(0) or log(-1).

    Non-positive values are replaced by float32 eps (the gap between 1.0
    and the next float32) before the log, so the result is a large
    negative finite number, ln(2**-23) ~= -15.94, never -inf or nan.
    """
    x = np.asarray(x, dtype=np.float32)
    x = np.where(x <= 0, np.finfo(np.float32).eps, x)
    return np.log(x).astype(np.float32, copy=False)
