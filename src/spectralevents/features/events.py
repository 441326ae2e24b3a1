"""Extraction of spectral events from a time-frequency power surface.

A spectral event is a local maximum of power in the (frequency, time) plane
of one trial that is strictly above its frequency's threshold.  How several
maxima inside one contiguous above-threshold burst are treated depends on
the :class:`~spectralevents.config.types.FindMethod`.
"""

from dataclasses import asdict, dataclass

import numpy as np
import polars as pl
from scipy import ndimage

from spectralevents.config.types import FindMethod, FrequencyBand
from spectralevents.errors import ConfigurationError
from spectralevents.features.thresholds import median_power
from spectralevents.validation import check_event_band, normalize_labels

# 8-connectivity in the (frequency, time) plane
_CONNECTIVITY = np.ones((3, 3), dtype=bool)


@dataclass(frozen=True)
class SpectralEvent:
    """One detected event.

    Times are in seconds, frequencies in Hz.  ``duration`` and
    ``frequency_span`` are ``offset_time - onset_time`` and
    ``upper_frequency - lower_frequency``, so an event confined to a single
    bin has zero duration and span.
    """

    trial: int
    class_label: float
    peak_time: float
    peak_frequency: float
    peak_power: float
    normalized_peak_power: float
    onset_time: float
    offset_time: float
    duration: float
    lower_frequency: float
    upper_frequency: float
    frequency_span: float
    find_method: FindMethod

    def to_dict(self) -> dict:
        record = asdict(self)
        record["find_method"] = int(self.find_method)
        return record


EVENT_SCHEMA: dict[str, pl.DataType] = {
    "trial": pl.Int64,
    "class_label": pl.Float64,
    "peak_time": pl.Float64,
    "peak_frequency": pl.Float64,
    "peak_power": pl.Float64,
    "normalized_peak_power": pl.Float64,
    "onset_time": pl.Float64,
    "offset_time": pl.Float64,
    "duration": pl.Float64,
    "lower_frequency": pl.Float64,
    "upper_frequency": pl.Float64,
    "frequency_span": pl.Float64,
    "find_method": pl.Int64,
}
"""Column types of :func:`events_to_frame`."""


def events_to_frame(events: list[SpectralEvent]) -> pl.DataFrame:
    """Tabulate events, one row per event, with :data:`EVENT_SCHEMA` columns."""
    records = [e.to_dict() for e in events]
    columns = {
        name: [_cast(r[name], dtype) for r in records]
        for name, dtype in EVENT_SCHEMA.items()
    }
    return pl.DataFrame(columns, schema=EVENT_SCHEMA)


def _cast(value, dtype: pl.DataType):
    return int(value) if dtype == pl.Int64 else float(value)


def local_maxima(power: np.ndarray) -> np.ndarray:
    """Mask of bins strictly greater than all their neighbours.

    Parameters
    ----------
    power : np.ndarray
        Shape ``(n_freqs, n_times)``.  Neighbours are the 8 surrounding bins,
        or the 2 adjacent time bins when there is a single frequency row.
        Bins on the border only compare with the neighbours that exist.

    Returns
    -------
    np.ndarray
        Boolean mask, same shape as *power*.
    """
    power = np.asarray(power, dtype=float)
    if power.shape[0] == 1:
        footprint = np.array([[True, False, True]])
    else:
        footprint = _CONNECTIVITY.copy()
        footprint[1, 1] = False
    neighbours = ndimage.maximum_filter(
        power, footprint=footprint, mode="constant", cval=-np.inf
    )
    return power > neighbours


def above_threshold_regions(
    power: np.ndarray, thresholds: np.ndarray
) -> tuple[np.ndarray, int]:
    """Label the 8-connected regions of bins strictly above threshold.

    Returns
    -------
    tuple[np.ndarray, int]
        ``(labels, n_regions)`` as returned by :func:`scipy.ndimage.label`;
        label 0 is below threshold.
    """
    mask = np.asarray(power) > np.asarray(thresholds)[:, np.newaxis]
    return ndimage.label(mask, structure=_CONNECTIVITY)


def _contiguous_span(line: np.ndarray, idx: int) -> tuple[int, int]:
    """First and last index of the run of ``True`` in *line* containing *idx*."""
    below = np.flatnonzero(~line)
    before = below[below < idx]
    after = below[below > idx]
    first = before[-1] + 1 if before.size else 0
    last = after[0] - 1 if after.size else line.size - 1
    return int(first), int(last)


def _strongest_per_region(
    peak_freqs: np.ndarray, peak_times: np.ndarray, power: np.ndarray, labels: np.ndarray
) -> np.ndarray:
    """Indices of the highest peak of each region, in the input order."""
    best: dict[int, int] = {}
    for k, (f, t) in enumerate(zip(peak_freqs, peak_times)):
        region = labels[f, t]
        if region not in best:
            best[region] = k
            continue
        strongest = best[region]
        if power[f, t] > power[peak_freqs[strongest], peak_times[strongest]]:
            best[region] = k
    return np.array(sorted(best.values()), dtype=int)


def find_trial_events(
    power: np.ndarray,
    thresholds: np.ndarray,
    freqs: np.ndarray,
    times: np.ndarray,
    find_method: FindMethod | int = FindMethod.PERMISSIVE,
    trial: int = 0,
    class_label: float = 1,
    medians: np.ndarray | None = None,
) -> list[SpectralEvent]:
    """Find the events of one trial.

    Parameters
    ----------
    power : np.ndarray
        Power of the trial restricted to the event band,
        ``(n_band_freqs, n_times)``.
    thresholds : np.ndarray
        Threshold of each row of *power*.
    freqs : np.ndarray
        Frequency of each row of *power*.
    times : np.ndarray
        Time of each column of *power*.
    find_method : FindMethod | int
        Overlap policy.
    trial : int
        Trial index recorded on the events.
    class_label : float
        Class label recorded on the events.
    medians : np.ndarray, optional
        Median power of each row, used for ``normalized_peak_power``.
        Defaults to the medians of this trial alone.

    Returns
    -------
    list[SpectralEvent]
        Ordered by peak frequency, then peak time.
    """
    find_method = FindMethod.coerce(find_method)
    power = np.asarray(power, dtype=float)
    thresholds = np.asarray(thresholds, dtype=float)
    if medians is None:
        medians = median_power(power)

    above = power > thresholds[:, np.newaxis]
    peak_freqs, peak_times = np.nonzero(local_maxima(power) & above)

    if find_method is FindMethod.SUPPRESSIVE and peak_freqs.size:
        labels, _ = ndimage.label(above, structure=_CONNECTIVITY)
        keep = _strongest_per_region(peak_freqs, peak_times, power, labels)
        peak_freqs, peak_times = peak_freqs[keep], peak_times[keep]

    events = []
    for f, t in zip(peak_freqs, peak_times):
        onset, offset = _contiguous_span(above[f, :], t)
        lower, upper = _contiguous_span(above[:, t], f)
        peak_power = power[f, t]
        with np.errstate(divide="ignore"):
            normalized = np.float64(peak_power) / medians[f]
        events.append(
            SpectralEvent(
                trial=int(trial),
                class_label=class_label,
                peak_time=float(times[t]),
                peak_frequency=float(freqs[f]),
                peak_power=float(peak_power),
                normalized_peak_power=float(normalized),
                onset_time=float(times[onset]),
                offset_time=float(times[offset]),
                duration=float(times[offset] - times[onset]),
                lower_frequency=float(freqs[lower]),
                upper_frequency=float(freqs[upper]),
                frequency_span=float(freqs[upper] - freqs[lower]),
                find_method=find_method,
            )
        )
    return events


def find_spectral_events(
    power: np.ndarray,
    thresholds: np.ndarray,
    freqs: np.ndarray,
    times: np.ndarray,
    event_band: FrequencyBand,
    find_method: FindMethod | int = FindMethod.PERMISSIVE,
    labels: np.ndarray | float = 1,
    medians: np.ndarray | None = None,
) -> list[SpectralEvent]:
    """Find the events of every trial of a subject.

    Parameters
    ----------
    power : np.ndarray
        Subject power ``(n_freqs, n_times, n_trials)``.
    thresholds : np.ndarray
        Per-frequency thresholds ``(n_freqs,)`` computed on the whole
        subject (see :func:`~spectralevents.features.thresholds.factor_of_median_threshold`).
    freqs : np.ndarray
        Frequencies ``(n_freqs,)``.
    times : np.ndarray
        Times ``(n_times,)``.
    event_band : FrequencyBand
        Only rows with ``low <= freq <= high`` are searched.
    find_method : FindMethod | int
        Overlap policy.
    labels : np.ndarray | float
        Class label of each trial, or one label for all trials.
    medians : np.ndarray, optional
        Per-frequency median power ``(n_freqs,)``; computed from *power*
        when omitted.

    Returns
    -------
    list[SpectralEvent]
        Events of trial 0, then trial 1, ...; within a trial ordered by
        frequency then time.

    Raises
    ------
    ConfigurationError
        For an invalid find-method, event band or label vector.
    """
    find_method = FindMethod.coerce(find_method)
    power = np.asarray(power, dtype=float)
    if power.ndim == 2:
        power = power[..., np.newaxis]
    if power.ndim != 3:
        raise ConfigurationError(f"expected a 3-D power array, got {power.ndim}-D")
    freqs = np.asarray(freqs, dtype=float)
    thresholds = np.asarray(thresholds, dtype=float)
    if thresholds.shape != (power.shape[0],):
        raise ConfigurationError(
            f"expected {power.shape[0]} thresholds, got shape {thresholds.shape}"
        )
    band_rows = check_event_band(event_band, freqs)
    n_trials = power.shape[2]
    labels = normalize_labels(labels, n_trials)
    if medians is None:
        medians = median_power(power)

    events = []
    for trial in range(n_trials):
        events.extend(
            find_trial_events(
                power[band_rows, :, trial],
                thresholds[band_rows],
                freqs[band_rows],
                times,
                find_method=find_method,
                trial=trial,
                class_label=labels[trial].item(),
                medians=np.asarray(medians)[band_rows],
            )
        )
    return events
