"""Time-frequency, threshold and event functions.

Modules
-------
``timefrequency``
    Morlet wavelet transform of single trials and stacking of a subject's
    trials into a ``(n_freqs, n_times, n_trials)`` power surface.

``thresholds``
    Factor-of-median power thresholds, one per frequency.

``events``
    Local-maximum event extraction with the permissive and suppressive
    find-methods, and the :class:`SpectralEvent` record.

All functions operate on plain NumPy arrays and can be used without the
:class:`~spectralevents.detection.detector.SpectralEventDetector`::

    from spectralevents.features import timefrequency, thresholds, events

    tfr = timefrequency.subject_tfr(trials, freqs, sfreq=250)
    thr = thresholds.factor_of_median_threshold(tfr.power)
    found = events.find_spectral_events(
        tfr.power, thr, tfr.freqs, tfr.times, event_band=(15, 25)
    )
"""

from spectralevents.features.events import SpectralEvent
from spectralevents.features.thresholds import FACTOR_OF_MEDIAN
from spectralevents.features.timefrequency import TimeFrequencyRepresentation

__all__ = ["FACTOR_OF_MEDIAN", "SpectralEvent", "TimeFrequencyRepresentation"]
