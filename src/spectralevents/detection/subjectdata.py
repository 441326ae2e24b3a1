"""SubjectData container and EpochsLike protocol for loading trials."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np

from spectralevents.errors import ConfigurationError
from spectralevents.utils.eeg_helpers import get_event_codes, time_window_mask


@runtime_checkable
class EpochsLike(Protocol):
    """Structural protocol matching the mne.Epochs subset used by this library.

    Any object that provides these attributes and methods can be turned into
    :class:`SubjectData` without importing MNE.
    """

    ch_names: list[str]
    events: np.ndarray  # shape (n_epochs, 3); column 2 holds event codes
    times: np.ndarray  # shape (n_times,), seconds relative to the event

    def get_data(self) -> np.ndarray:
        """Return data array of shape (n_epochs, n_channels, n_times)."""
        ...


@dataclass
class SubjectData:
    """Trials and class labels of one subject or session.

    Parameters
    ----------
    trials : np.ndarray
        Trial matrix of shape ``(n_times, n_trials)``: one column per trial,
        all trials sharing the sampling rate.
    labels : np.ndarray | float | int | bool
        Class label of each trial, or a single label for all of them.
        Normalized to a flat ``(n_trials,)`` vector by
        :func:`~spectralevents.validation.validate_inputs`.
    """

    trials: np.ndarray
    labels: np.ndarray | float | int | bool = 1

    @property
    def n_times(self) -> int:
        return np.shape(self.trials)[0]

    @property
    def n_trials(self) -> int:
        shape = np.shape(self.trials)
        return shape[1] if len(shape) > 1 else 1

    @classmethod
    def from_array(
        cls,
        trials: np.ndarray,
        labels: np.ndarray | float | int | bool = 1,
    ) -> SubjectData:
        """Build a :class:`SubjectData` from a ``(n_times, n_trials)`` array."""
        return cls(trials=np.asarray(trials), labels=labels)

    @classmethod
    def from_epochs(
        cls,
        eeg: EpochsLike,
        picks: list[str] | None = None,
        time_window: tuple[float, float] | None = None,
        labels: np.ndarray | None = None,
    ) -> SubjectData:
        """Average channels of epoched EEG into one time series per trial.

        Parameters
        ----------
        eeg : EpochsLike
            Epoched EEG object (e.g. ``mne.Epochs``).
        picks : list[str], optional
            Channels to average.  Defaults to all channels.
        time_window : tuple[float, float], optional
            ``(start, end)`` in seconds relative to the epoch event; only
            samples inside it are kept.  Defaults to the whole epoch.
        labels : np.ndarray, optional
            Class label per epoch.  Defaults to the epoch event codes, so
            that each experimental condition gets its own numeric class.

        Returns
        -------
        SubjectData
            One trial per epoch, in epoch order.
        """
        data = np.asarray(eeg.get_data())
        ch_names = list(eeg.ch_names)

        if picks is None:
            ch_idx = list(range(len(ch_names)))
        else:
            missing = [ch for ch in picks if ch not in ch_names]
            if missing:
                raise ConfigurationError(f"channels not found: {missing}")
            ch_idx = [ch_names.index(ch) for ch in picks]

        mask = time_window_mask(eeg.times, time_window)
        # (n_epochs, n_times) -> (n_times, n_epochs)
        trials = np.nanmean(data[:, ch_idx][..., mask], axis=1).T

        if labels is None:
            labels = get_event_codes(eeg)
        return cls(trials=trials, labels=labels)
