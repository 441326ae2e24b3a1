"""Utility functions for spectralevents."""

from spectralevents.utils.eeg_helpers import (
    get_event_codes,
    segment_times,
    time_window_mask,
)
from spectralevents.utils.toolkit import calculate_over_pool, save_events

__all__ = [
    "calculate_over_pool",
    "get_event_codes",
    "save_events",
    "segment_times",
    "time_window_mask",
]
