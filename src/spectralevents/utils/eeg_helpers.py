"""Helpers for turning epoched recordings into trial matrices."""

from __future__ import annotations

import numpy as np

from spectralevents.errors import ConfigurationError


def get_event_codes(eeg) -> np.ndarray:
    """Return the numeric event code of each epoch.

    Parameters
    ----------
    eeg : EpochsLike
        Epoched EEG with an MNE-style ``events`` array.

    Returns
    -------
    np.ndarray
        Shape ``(n_epochs,)``, integer codes from column 2 of ``events``.
    """
    return np.asarray(eeg.events)[:, 2].astype(int)


def segment_times(seg_win: tuple[float, float], sfreq: float) -> np.ndarray:
    """Map the samples of a segmentation window to times in seconds.

    Parameters
    ----------
    seg_win : tuple[float, float]
        ``(start, end)`` of the segment relative to stimulus onset, in seconds.
    sfreq : float
        Sampling frequency in Hz.

    Returns
    -------
    np.ndarray
        ``round((|start| + |end|) * sfreq)`` times spaced evenly from
        *start* to *end*.
    """
    start, end = seg_win
    if end <= start:
        raise ConfigurationError(f"segmentation window must be ascending, got {seg_win}")
    n_samp = int(round((abs(start) + abs(end)) * sfreq))
    return np.linspace(start, end, n_samp)


def time_window_mask(
    times: np.ndarray, time_window: tuple[float, float] | None
) -> np.ndarray:
    """Boolean mask of the samples of *times* inside *time_window* (inclusive).

    ``None`` keeps every sample.
    """
    times = np.asarray(times, dtype=float)
    if time_window is None:
        return np.ones(times.shape, dtype=bool)
    start, end = time_window
    if end < start:
        raise ConfigurationError(f"time window must be ascending, got {time_window}")
    mask = (times >= start) & (times <= end)
    if not mask.any():
        raise ConfigurationError(
            f"time window {time_window} does not overlap the epochs "
            f"({times[0]:.3f}s to {times[-1]:.3f}s)"
        )
    return mask
