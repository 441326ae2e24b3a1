"""spectralevents - Detection of transient spectral events in neural recordings.

Usage::

    from spectralevents import SpectralEventDetector, SubjectData

    detector = SpectralEventDetector("spectral_events.yaml", num_workers=4)
    result = detector.detect(
        {"s01": SubjectData(trials, labels), "s02": SubjectData(trials2, labels2)}
    )
    df = result.to_frame()

See :mod:`spectralevents.features` for the transform, threshold and event
functions used by the detector.
"""

from collections.abc import Mapping
from pathlib import Path

import numpy as np

from spectralevents.config import (
    FindMethod,
    SpectralEventsConfig,
    get_config_schema,
    parse_spectralevents_config,
)
from spectralevents.detection import (
    SpectralEventDetector,
    SpectralEventsResult,
    SubjectData,
)
from spectralevents.errors import (
    ConfigurationError,
    NumericError,
    SpectralEventsError,
)
from spectralevents.features import SpectralEvent, TimeFrequencyRepresentation


def detect(
    config: str | Path | dict | SpectralEventsConfig,
    subjects: Mapping[str, SubjectData | tuple[np.ndarray, np.ndarray]],
    *,
    num_workers: int = 1,
    **kwargs,
) -> SpectralEventsResult:
    """Detect spectral events for several subjects in a single call.

    Parameters
    ----------
    config : str | Path | dict | SpectralEventsConfig
        Detection parameters: a YAML file path, a dict, or a validated config.
    subjects : Mapping[str, SubjectData | tuple]
        Trial matrix ``(n_times, n_trials)`` and class labels per subject.
    num_workers : int
        Number of parallel worker processes.
    **kwargs
        Forwarded to :class:`~spectralevents.detection.detector.SpectralEventDetector`.

    Returns
    -------
    SpectralEventsResult
        Events, TFRs and trial matrices keyed by subject.

    Example
    -------
    ::

        import spectralevents

        result = spectralevents.detect(
            {"event_band": [15, 25], "freqs": {"start": 2, "stop": 40, "step": 1},
             "sfreq": 250, "find_method": 1},
            {"s01": (trials, 1)},
        )
    """
    detector = SpectralEventDetector(config, num_workers=num_workers, **kwargs)
    return detector.detect(subjects)


__all__ = [
    "ConfigurationError",
    "FindMethod",
    "NumericError",
    "SpectralEvent",
    "SpectralEventDetector",
    "SpectralEventsConfig",
    "SpectralEventsError",
    "SpectralEventsResult",
    "SubjectData",
    "TimeFrequencyRepresentation",
    "detect",
    "get_config_schema",
    "parse_spectralevents_config",
]
