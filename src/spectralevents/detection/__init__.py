"""Multi-subject spectral event detection orchestration."""

from spectralevents.detection.detector import (
    EventVisualizer,
    SpectralEventDetector,
    SpectralEventsResult,
    SubjectResult,
)
from spectralevents.detection.subjectdata import EpochsLike, SubjectData

__all__ = [
    "EpochsLike",
    "EventVisualizer",
    "SpectralEventDetector",
    "SpectralEventsResult",
    "SubjectData",
    "SubjectResult",
]
