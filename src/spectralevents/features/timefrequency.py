"""Morlet wavelet time-frequency decomposition of trials.

Each trial is convolved with one complex Morlet wavelet per frequency.  The
wavelets come from :func:`mne.time_frequency.morlet`, are laid out centred on
sample 0 of a buffer as long as the trial and renormalized to unit energy, so
that power is comparable across frequencies.  Convolution is done by
multiplication in the frequency domain, i.e. it is circular over the trial.

Types
-----
``TimeFrequencyRepresentation``
    Power (and optionally phase) of all trials of one subject, shape
    ``(n_freqs, n_times, n_trials)``, with its frequency and time axes.
"""

from dataclasses import dataclass

import numpy as np
from mne.time_frequency import morlet
from rich.console import Console
from scipy import fft

from spectralevents.errors import ConfigurationError, NumericError
from spectralevents.utils.toolkit import calculate_over_pool


@dataclass(frozen=True)
class TimeFrequencyRepresentation:
    """Time-frequency surface of one subject.

    Arrays are made read-only on construction.

    Attributes
    ----------
    power : np.ndarray
        Squared magnitude of the wavelet transform, shape
        ``(n_freqs, n_times, n_trials)``.
    freqs : np.ndarray
        Frequencies in Hz, shape ``(n_freqs,)``.
    times : np.ndarray
        Sample times in seconds, shape ``(n_times,)``.
    phase : np.ndarray | None
        Angle of the wavelet transform (same shape as *power*), or ``None``
        when phase was not requested.
    """

    power: np.ndarray
    freqs: np.ndarray
    times: np.ndarray
    phase: np.ndarray | None = None

    def __post_init__(self):
        for arr in (self.power, self.freqs, self.times, self.phase):
            if arr is not None:
                arr.flags.writeable = False

    @property
    def shape(self) -> tuple[int, int, int]:
        return self.power.shape

    @property
    def n_trials(self) -> int:
        return self.power.shape[2]


def time_vector(n_times: int, sfreq: float, tmin: float = 0.0) -> np.ndarray:
    """Times in seconds of *n_times* samples starting at *tmin*."""
    return tmin + np.arange(n_times) / sfreq


def morlet_wavelets(
    freqs: np.ndarray, sfreq: float, n_times: int, n_cycles: float = 7.0
) -> np.ndarray:
    """Build unit-energy complex Morlet wavelets as circular kernels.

    Parameters
    ----------
    freqs : np.ndarray
        Frequencies in Hz.
    sfreq : float
        Sampling frequency in Hz.
    n_times : int
        Length of the trials the kernels will be applied to.
    n_cycles : float
        Number of cycles of each wavelet; the Gaussian envelope has a
        standard deviation of ``n_cycles / (2 * pi * f)`` seconds.

    Returns
    -------
    np.ndarray
        Complex array of shape ``(n_freqs, n_times)``.  Row *i* holds the
        wavelet of ``freqs[i]`` with its centre at index 0 and its negative
        times wrapped to the end of the row.  Wavelets longer than the trial
        are cropped symmetrically before normalization.
    """
    if n_times < 1:
        raise NumericError("cannot build wavelets for trials with no samples")
    freqs = np.asarray(freqs, dtype=float)
    kernels = np.zeros((freqs.size, n_times), dtype=np.complex128)

    # Keep offsets -n_times//2 .. n_times - n_times//2 - 1 so each slot is used once
    lowest = -(n_times // 2)
    highest = n_times - n_times // 2 - 1

    for i, wavelet in enumerate(morlet(sfreq, freqs, n_cycles=n_cycles)):
        half = len(wavelet) // 2
        offsets = np.arange(-half, len(wavelet) - half)
        keep = (offsets >= lowest) & (offsets <= highest)
        kernels[i, offsets[keep] % n_times] = wavelet[keep]
        kernels[i] /= np.linalg.norm(kernels[i])

    return kernels


def morlet_transform(
    signal: np.ndarray,
    freqs: np.ndarray | None = None,
    sfreq: float | None = None,
    n_cycles: float = 7.0,
    wavelets: np.ndarray | None = None,
) -> np.ndarray:
    """Complex Morlet wavelet transform of one trial.

    Parameters
    ----------
    signal : np.ndarray
        1-D time series.
    freqs, sfreq, n_cycles
        Used to build the wavelets when *wavelets* is not given.
    wavelets : np.ndarray, optional
        Precomputed kernels from :func:`morlet_wavelets` for this trial
        length.

    Returns
    -------
    np.ndarray
        Complex array ``(n_freqs, n_times)``.  Power is ``np.abs(...) ** 2``
        and phase ``np.angle(...)``.

    Raises
    ------
    NumericError
        If the signal is empty or contains NaN/Inf values.
    """
    signal = np.asarray(signal, dtype=float)
    if signal.ndim != 1:
        raise ConfigurationError(f"expected a 1-D trial, got {signal.ndim}-D input")
    if signal.size == 0:
        raise NumericError("trial has zero duration")
    if not np.all(np.isfinite(signal)):
        raise NumericError("trial contains non-finite samples")

    if wavelets is None:
        if freqs is None or sfreq is None:
            raise ConfigurationError("freqs and sfreq are required without wavelets")
        wavelets = morlet_wavelets(freqs, sfreq, signal.size, n_cycles=n_cycles)
    elif wavelets.shape[-1] != signal.size:
        raise ConfigurationError(
            f"wavelets built for {wavelets.shape[-1]} samples, trial has {signal.size}"
        )

    return fft.ifft(fft.fft(wavelets, axis=-1) * fft.fft(signal), axis=-1)


def _transform_trial(
    item: tuple[int, np.ndarray], wavelets: np.ndarray, keep_phase: bool
) -> tuple[np.ndarray, np.ndarray | None]:
    trial_idx, signal = item
    try:
        coefs = morlet_transform(signal, wavelets=wavelets)
    except NumericError as exc:
        raise NumericError(exc.message, trial=trial_idx) from exc
    power = np.abs(coefs) ** 2
    phase = np.angle(coefs) if keep_phase else None
    return power, phase


def subject_tfr(
    trials: np.ndarray,
    freqs: np.ndarray,
    sfreq: float,
    n_cycles: float = 7.0,
    tmin: float = 0.0,
    keep_phase: bool = False,
    num_workers: int = 1,
    debug: bool = False,
    disable_progress: bool = True,
    console: Console | None = None,
) -> TimeFrequencyRepresentation:
    """Transform every trial of a subject and stack them along the last axis.

    Parameters
    ----------
    trials : np.ndarray
        Trial matrix ``(n_times, n_trials)``.
    freqs : np.ndarray
        Frequencies in Hz.
    sfreq : float
        Sampling frequency in Hz.
    n_cycles : float
        Wavelet width in cycles (default 7).
    tmin : float
        Time of the first sample, in seconds.
    keep_phase : bool
        Also return the phase of the transform.
    num_workers : int
        Number of parallel worker processes, one task per trial.
    debug : bool
        Run in single-process mode when ``True``.
    disable_progress : bool
        Suppress the progress bar.
    console : rich.console.Console, optional
        Console for progress output.

    Returns
    -------
    TimeFrequencyRepresentation
        Trial *k* of the output is column *k* of *trials*.

    Raises
    ------
    NumericError
        If a trial cannot be transformed; ``trial`` names its column.
    """
    trials = np.asarray(trials, dtype=float)
    if trials.ndim == 1:
        trials = trials[:, np.newaxis]
    n_times, n_trials = trials.shape
    freqs = np.asarray(freqs, dtype=float)

    if n_times == 0:
        raise NumericError("trials have zero duration")

    wavelets = morlet_wavelets(freqs, sfreq, n_times, n_cycles=n_cycles)

    results = calculate_over_pool(
        _transform_trial,
        [(k, trials[:, k]) for k in range(n_trials)],
        num_workers=num_workers,
        debug=debug or num_workers <= 1,
        n_jobs=n_trials,
        task_name="Computing TFR",
        disable_progress=disable_progress,
        console=console,
        wavelets=wavelets,
        keep_phase=keep_phase,
    )

    power = np.zeros((freqs.size, n_times, n_trials))
    phase = np.zeros((freqs.size, n_times, n_trials)) if keep_phase else None
    for k, (trial_power, trial_phase) in enumerate(results):
        power[..., k] = trial_power
        if keep_phase:
            phase[..., k] = trial_phase

    return TimeFrequencyRepresentation(
        power=power,
        freqs=freqs.copy(),
        times=time_vector(n_times, sfreq, tmin),
        phase=phase,
    )
