"""Input validation run before any transform work.

All checks raise :class:`~spectralevents.errors.ConfigurationError` naming
the violated constraint.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import TYPE_CHECKING

import numpy as np

from spectralevents.errors import ConfigurationError

if TYPE_CHECKING:
    from spectralevents.config.types import FrequencyBand
    from spectralevents.detection.subjectdata import SubjectData


def _below(value: float, bound: float) -> bool:
    """``value < bound`` beyond floating-point noise."""
    return value < bound and not np.isclose(value, bound, rtol=1e-9, atol=1e-12)


def normalize_labels(labels, n_trials: int, subject: str | None = None) -> np.ndarray:
    """Return class labels as a flat array of length *n_trials*.

    A single label is broadcast to every trial; row and column vectors are
    flattened.

    Raises
    ------
    ConfigurationError
        If the labels are missing, not numeric/logical, or their count is
        neither 1 nor *n_trials*.
    """
    where = f" for subject {subject!r}" if subject is not None else ""
    if labels is None:
        raise ConfigurationError(f"missing class labels{where}")
    arr = np.asarray(labels)
    if arr.dtype.kind not in "biuf":
        raise ConfigurationError(
            f"class labels{where} must be numeric or logical, got dtype {arr.dtype}"
        )
    if arr.size == 0:
        raise ConfigurationError(f"missing class labels{where}")
    if arr.size == 1:
        return np.full(n_trials, arr.reshape(-1)[0], dtype=arr.dtype)
    if arr.ndim > 2 or (arr.ndim == 2 and 1 not in arr.shape):
        raise ConfigurationError(
            f"class labels{where} must be a vector, got shape {arr.shape}"
        )
    if arr.size != n_trials:
        raise ConfigurationError(
            f"{arr.size} class labels{where} for {n_trials} trials; "
            f"expected 1 or {n_trials}"
        )
    return arr.reshape(-1).copy()


def check_sfreq(sfreq: float) -> float:
    if not np.isfinite(sfreq) or sfreq <= 0:
        raise ConfigurationError(f"sampling rate must be positive, got {sfreq}")
    return float(sfreq)


def check_frequency_vector(
    freqs: np.ndarray, sfreq: float, min_duration: float | None
) -> np.ndarray:
    """Check that every frequency can be resolved by the trials.

    Parameters
    ----------
    freqs : np.ndarray
        Ascending frequencies in Hz.
    sfreq : float
        Sampling frequency in Hz.
    min_duration : float | None
        Duration in seconds of the shortest trial.  When ``None`` (no trial
        has samples) only the shape, Nyquist and ordering checks run.

    Returns
    -------
    np.ndarray
        *freqs* as a float array.

    Raises
    ------
    ConfigurationError
        If ``freqs[0] < 1 / min_duration``, ``freqs[-1] > sfreq / 2`` or a
        step is smaller than ``1 / min_duration``.
    """
    freqs = np.asarray(freqs, dtype=float)
    if freqs.ndim != 1 or freqs.size == 0:
        raise ConfigurationError("frequency vector must be a non-empty 1-D sequence")
    if not np.all(np.isfinite(freqs)):
        raise ConfigurationError("frequency vector contains non-finite values")

    floor = 1.0 / min_duration if min_duration is not None else None
    nyquist = sfreq / 2
    if floor is not None and _below(freqs[0], floor):
        raise ConfigurationError(
            f"minimum frequency {freqs[0]:g} Hz is below the resolvable floor "
            f"{floor:g} Hz (1 / {min_duration:g} s)"
        )
    if _below(nyquist, freqs[-1]):
        raise ConfigurationError(
            f"maximum frequency {freqs[-1]:g} Hz exceeds the Nyquist frequency "
            f"{nyquist:g} Hz"
        )
    if freqs.size > 1:
        steps = np.diff(freqs)
        if np.any(steps <= 0):
            raise ConfigurationError("frequency vector must be strictly ascending")
        if floor is not None and _below(steps.min(), floor):
            raise ConfigurationError(
                f"frequency step {steps.min():g} Hz is below the resolvable floor "
                f"{floor:g} Hz"
            )
    return freqs


def check_event_band(event_band: FrequencyBand, freqs: np.ndarray) -> np.ndarray:
    """Return the mask of the rows of *freqs* inside *event_band* (inclusive).

    Raises
    ------
    ConfigurationError
        If the band is not two ascending frequencies or selects no row.
    """
    band = np.asarray(event_band, dtype=float).reshape(-1)
    if band.size != 2:
        raise ConfigurationError(f"event band must be two frequencies, got {event_band}")
    low, high = band
    if not low <= high:
        raise ConfigurationError(f"event band must be ascending, got {event_band}")
    freqs = np.asarray(freqs, dtype=float)
    rows = (freqs >= low) & (freqs <= high)
    if not rows.any():
        raise ConfigurationError(
            f"event band {low:g}-{high:g} Hz contains none of the analysed frequencies"
        )
    return rows


def check_trials(trials, subject: str | None = None) -> np.ndarray:
    """Return the trial matrix as a float ``(n_times, n_trials)`` array."""
    where = f" of subject {subject!r}" if subject is not None else ""
    arr = np.asarray(trials)
    if arr.dtype.kind not in "biuf":
        raise ConfigurationError(f"trial matrix{where} must be numeric, got dtype {arr.dtype}")
    if arr.ndim == 1:
        arr = arr[:, np.newaxis]
    if arr.ndim != 2:
        raise ConfigurationError(
            f"trial matrix{where} must be (n_times, n_trials), got shape {arr.shape}"
        )
    if arr.shape[1] == 0:
        raise ConfigurationError(f"trial matrix{where} has no trials")
    return arr.astype(float)


def validate_inputs(
    subjects: Mapping[str, SubjectData],
    freqs: np.ndarray,
    sfreq: float,
    event_band: FrequencyBand,
) -> dict[str, SubjectData]:
    """Validate every subject against the analysis parameters.

    Parameters
    ----------
    subjects : Mapping[str, SubjectData]
        Trial matrix and class labels of each subject.
    freqs : np.ndarray
        Frequency vector in Hz.
    sfreq : float
        Sampling frequency in Hz.
    event_band : FrequencyBand
        Band searched for events.

    Returns
    -------
    dict[str, SubjectData]
        New containers, in the order of *subjects*, with float trial
        matrices and flat label vectors.  *subjects* is left untouched.
        Subjects whose trials have no samples are passed through; they fail
        with :class:`~spectralevents.errors.NumericError` when transformed.

    Raises
    ------
    ConfigurationError
        On the first violated constraint.
    """
    if not subjects:
        raise ConfigurationError("no subjects to analyse")
    sfreq = check_sfreq(sfreq)

    normalized: dict[str, SubjectData] = {}
    for subject, data in subjects.items():
        trials = check_trials(data.trials, subject)
        labels = normalize_labels(data.labels, trials.shape[1], subject)
        normalized[subject] = replace(data, trials=trials, labels=labels)

    durations = [d.trials.shape[0] / sfreq for d in normalized.values() if d.trials.shape[0]]
    check_frequency_vector(freqs, sfreq, min(durations) if durations else None)
    check_event_band(event_band, freqs)
    return normalized
