"""Factor-of-median power thresholds."""

import numpy as np

FACTOR_OF_MEDIAN = 6.0
"""Multiple of the median power above which a bin can hold an event."""


def median_power(power: np.ndarray) -> np.ndarray:
    """Median power of each frequency over all times and trials.

    Parameters
    ----------
    power : np.ndarray
        Shape ``(n_freqs, n_times)`` or ``(n_freqs, n_times, n_trials)``.

    Returns
    -------
    np.ndarray
        Shape ``(n_freqs,)``.
    """
    power = np.asarray(power)
    return np.median(power.reshape(power.shape[0], -1), axis=1)


def factor_of_median_threshold(
    power: np.ndarray, factor: float = FACTOR_OF_MEDIAN
) -> np.ndarray:
    """Per-frequency power threshold: *factor* times :func:`median_power`.

    The threshold belongs to the whole subject: pass the power of every
    trial so that events are comparable across trials and classes.
    """
    return factor * median_power(power)
