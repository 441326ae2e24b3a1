"""Tests for local-maximum detection and event extraction."""

import numpy as np
import polars as pl
import pytest

from spectralevents.config.types import FindMethod
from spectralevents.errors import ConfigurationError
from spectralevents.features.events import (
    EVENT_SCHEMA,
    SpectralEvent,
    above_threshold_regions,
    events_to_frame,
    find_spectral_events,
    find_trial_events,
    local_maxima,
)

FREQS = np.array([10.0, 11.0, 12.0])
TIMES = np.arange(7) * 0.01
THRESHOLDS = np.full(3, 2.0)


@pytest.fixture
def two_bursts():
    """One burst with two peaks (5 and 4) and a separate single-peak burst (3)."""
    power = np.ones((3, 7))
    power[1, 1:4] = [5.0, 3.0, 4.0]
    power[1, 6] = 3.0
    return power


class TestLocalMaxima:
    def test_strict_eight_connected(self, two_bursts):
        peaks = np.argwhere(local_maxima(two_bursts))
        assert [tuple(p) for p in peaks] == [(1, 1), (1, 3), (1, 6)]

    def test_plateau_is_not_a_maximum(self):
        power = np.ones((3, 5))
        power[1, 1:3] = 4.0
        assert not local_maxima(power).any()

    def test_diagonal_neighbour_counts(self):
        power = np.ones((3, 3))
        power[1, 1] = 5.0
        power[0, 2] = 6.0
        peaks = local_maxima(power)
        assert not peaks[1, 1]
        assert peaks[0, 2]

    def test_border_bins(self):
        power = np.zeros((2, 4))
        power[0, 0] = 1.0
        power[1, 3] = 2.0
        assert [tuple(p) for p in np.argwhere(local_maxima(power))] == [(0, 0), (1, 3)]

    def test_single_row_uses_time_neighbours(self):
        power = np.array([[1.0, 3.0, 1.0, 4.0, 4.0, 1.0, 2.0]])
        assert np.flatnonzero(local_maxima(power)).tolist() == [1, 6]


class TestAboveThresholdRegions:
    def test_regions(self, two_bursts):
        labels, n = above_threshold_regions(two_bursts, THRESHOLDS)
        assert n == 2
        assert labels[1, 1] == labels[1, 3]
        assert labels[1, 6] != labels[1, 1]

    def test_diagonal_bins_connect(self):
        power = np.zeros((2, 2))
        power[0, 0] = power[1, 1] = 5.0
        _, n = above_threshold_regions(power, np.ones(2))
        assert n == 1


class TestFindTrialEvents:
    def test_permissive_keeps_every_peak(self, two_bursts):
        events = find_trial_events(two_bursts, THRESHOLDS, FREQS, TIMES, find_method=1)
        assert [(e.peak_frequency, e.peak_time) for e in events] == [
            (11.0, TIMES[1]),
            (11.0, TIMES[3]),
            (11.0, TIMES[6]),
        ]
        assert all(e.find_method is FindMethod.PERMISSIVE for e in events)

    def test_suppressive_keeps_strongest_per_region(self, two_bursts):
        events = find_trial_events(two_bursts, THRESHOLDS, FREQS, TIMES, find_method=2)
        assert [(e.peak_time, e.peak_power) for e in events] == [
            (TIMES[1], 5.0),
            (TIMES[6], 3.0),
        ]
        assert all(e.find_method is FindMethod.SUPPRESSIVE for e in events)

    def test_suppressive_tie_keeps_first(self):
        power = np.ones((1, 5))
        power[0, 1:4] = [4.0, 3.0, 4.0]
        events = find_trial_events(
            power, np.array([2.0]), FREQS[:1], TIMES[:5], find_method=2
        )
        assert [e.peak_time for e in events] == [TIMES[1]]

    def test_onset_offset_and_span(self, two_bursts):
        power = two_bursts.copy()
        power[0, 1] = power[2, 1] = 2.5
        first = find_trial_events(power, THRESHOLDS, FREQS, TIMES)[0]
        assert first.onset_time == TIMES[1]
        assert first.offset_time == TIMES[3]
        assert first.duration == pytest.approx(TIMES[3] - TIMES[1])
        assert first.lower_frequency == 10.0
        assert first.upper_frequency == 12.0
        assert first.frequency_span == 2.0

    def test_single_bin_event(self, two_bursts):
        last = find_trial_events(two_bursts, THRESHOLDS, FREQS, TIMES)[-1]
        assert last.onset_time == last.offset_time == TIMES[6]
        assert last.duration == 0.0
        assert last.frequency_span == 0.0

    def test_threshold_is_strict(self, two_bursts):
        thresholds = np.full(3, 5.0)
        assert find_trial_events(two_bursts, thresholds, FREQS, TIMES) == []

    def test_per_frequency_threshold(self):
        power = np.ones((3, 5))
        power[0, 1] = 4.0
        power[2, 3] = 4.0
        events = find_trial_events(power, np.array([5.0, 2.0, 2.0]), FREQS, TIMES[:5])
        assert [e.peak_frequency for e in events] == [12.0]

    def test_ordering_frequency_then_time(self):
        power = np.ones((3, 7))
        power[2, 0] = 5.0
        power[0, 5] = 5.0
        power[0, 2] = 5.0
        events = find_trial_events(power, THRESHOLDS, FREQS, TIMES)
        assert [(e.peak_frequency, e.peak_time) for e in events] == [
            (10.0, TIMES[2]),
            (10.0, TIMES[5]),
            (12.0, TIMES[0]),
        ]

    def test_normalized_peak_power(self, two_bursts):
        medians = np.full(3, 0.5)
        events = find_trial_events(
            two_bursts, THRESHOLDS, FREQS, TIMES, medians=medians
        )
        assert events[0].normalized_peak_power == pytest.approx(10.0)

    def test_trial_and_label_recorded(self, two_bursts):
        events = find_trial_events(
            two_bursts, THRESHOLDS, FREQS, TIMES, trial=4, class_label=2
        )
        assert {e.trial for e in events} == {4}
        assert {e.class_label for e in events} == {2}

    def test_invalid_find_method(self, two_bursts):
        with pytest.raises(ConfigurationError):
            find_trial_events(two_bursts, THRESHOLDS, FREQS, TIMES, find_method=3)


class TestFindSpectralEvents:
    @pytest.fixture
    def power(self, two_bursts):
        # 5 frequencies x 7 times x 2 trials; the bursts sit in rows 1-3
        power = np.ones((5, 7, 2))
        power[1:4, :, 0] = two_bursts
        power[2, 4, 1] = 9.0
        power[0, 3, 1] = 9.0  # out of band
        return power

    @pytest.fixture
    def freqs(self):
        return np.array([9.0, 10.0, 11.0, 12.0, 13.0])

    def test_restricted_to_event_band(self, power, freqs):
        events = find_spectral_events(
            power, np.full(5, 2.0), freqs, TIMES, event_band=(10, 12)
        )
        assert all(10 <= e.peak_frequency <= 12 for e in events)
        assert len(events) == 4

    def test_trial_order_and_labels(self, power, freqs):
        events = find_spectral_events(
            power, np.full(5, 2.0), freqs, TIMES, event_band=(10, 12), labels=[7, 8]
        )
        assert [e.trial for e in events] == [0, 0, 0, 1]
        assert [e.class_label for e in events] == [7, 7, 7, 8]

    def test_scalar_label_broadcast(self, power, freqs):
        events = find_spectral_events(
            power, np.full(5, 2.0), freqs, TIMES, event_band=(10, 12), labels=3
        )
        assert {e.class_label for e in events} == {3}

    def test_suppressive_subset_of_permissive(self, power, freqs):
        args = (power, np.full(5, 2.0), freqs, TIMES, (10, 12))
        permissive = find_spectral_events(*args, find_method=FindMethod.PERMISSIVE)
        suppressive = find_spectral_events(*args, find_method=FindMethod.SUPPRESSIVE)
        key = lambda e: (e.trial, e.peak_frequency, e.peak_time)
        assert {key(e) for e in suppressive} <= {key(e) for e in permissive}
        assert len(suppressive) == 3

    def test_band_edges_inclusive(self, power, freqs):
        events = find_spectral_events(
            power, np.full(5, 2.0), freqs, TIMES, event_band=(9, 9)
        )
        assert [(e.trial, e.peak_frequency) for e in events] == [(1, 9.0)]

    def test_label_mismatch_raises(self, power, freqs):
        with pytest.raises(ConfigurationError):
            find_spectral_events(
                power, np.full(5, 2.0), freqs, TIMES, (10, 12), labels=[1, 2, 3]
            )

    def test_threshold_shape_mismatch_raises(self, power, freqs):
        with pytest.raises(ConfigurationError, match="thresholds"):
            find_spectral_events(power, np.full(3, 2.0), freqs, TIMES, (10, 12))

    def test_empty_band_raises(self, power, freqs):
        with pytest.raises(ConfigurationError, match="contains none"):
            find_spectral_events(power, np.full(5, 2.0), freqs, TIMES, (20, 30))

    def test_all_zero_power_gives_no_events(self, freqs):
        power = np.zeros((5, 7, 2))
        assert find_spectral_events(power, np.zeros(5), freqs, TIMES, (9, 13)) == []


class TestEventsToFrame:
    def test_columns_and_rows(self, two_bursts):
        events = find_trial_events(two_bursts, THRESHOLDS, FREQS, TIMES)
        df = events_to_frame(events)
        assert df.columns == list(EVENT_SCHEMA)
        assert len(df) == 3
        assert df["find_method"].to_list() == [1, 1, 1]
        assert df["peak_power"].to_list() == [5.0, 4.0, 3.0]

    def test_empty(self):
        df = events_to_frame([])
        assert isinstance(df, pl.DataFrame)
        assert len(df) == 0
        assert dict(df.schema) == EVENT_SCHEMA

    def test_record_is_immutable(self, two_bursts):
        event = find_trial_events(two_bursts, THRESHOLDS, FREQS, TIMES)[0]
        assert isinstance(event, SpectralEvent)
        with pytest.raises(Exception):
            event.peak_power = 0.0
