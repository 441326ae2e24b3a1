"""Tests for the Morlet transform and the per-subject TFR."""

import numpy as np
import pytest

from spectralevents.errors import NumericError
from spectralevents.features.timefrequency import (
    TimeFrequencyRepresentation,
    morlet_transform,
    morlet_wavelets,
    subject_tfr,
    time_vector,
)

SFREQ = 250.0


class TestMorletWavelets:
    def test_shape_and_unit_energy(self, freqs):
        kernels = morlet_wavelets(freqs, SFREQ, n_times=1000)
        assert kernels.shape == (freqs.size, 1000)
        assert np.iscomplexobj(kernels)
        np.testing.assert_allclose(np.linalg.norm(kernels, axis=1), 1.0)

    def test_wavelet_longer_than_trial_is_cropped(self):
        # 7 cycles at 2 Hz span several seconds; the trial is 0.4 s
        kernels = morlet_wavelets(np.array([2.0, 20.0]), SFREQ, n_times=100)
        assert kernels.shape == (2, 100)
        np.testing.assert_allclose(np.linalg.norm(kernels, axis=1), 1.0)

    def test_centred_on_first_sample(self):
        kernels = morlet_wavelets(np.array([10.0]), SFREQ, n_times=500)
        assert np.argmax(np.abs(kernels[0])) == 0

    def test_more_cycles_means_longer_wavelet(self):
        narrow = morlet_wavelets(np.array([10.0]), SFREQ, 1000, n_cycles=3)
        wide = morlet_wavelets(np.array([10.0]), SFREQ, 1000, n_cycles=10)
        assert np.count_nonzero(wide) > np.count_nonzero(narrow)

    def test_no_samples_raises(self, freqs):
        with pytest.raises(NumericError, match="no samples"):
            morlet_wavelets(freqs, SFREQ, n_times=0)


class TestMorletTransform:
    def test_output_shape(self, rng, freqs):
        coefs = morlet_transform(rng.standard_normal(1000), freqs, SFREQ)
        assert coefs.shape == (freqs.size, 1000)
        assert np.iscomplexobj(coefs)

    def test_sine_peaks_at_its_frequency(self, freqs):
        t = np.arange(1000) / SFREQ
        signal = np.sin(2 * np.pi * 20.0 * t)
        power = np.abs(morlet_transform(signal, freqs, SFREQ)) ** 2
        assert freqs[np.argmax(power.mean(axis=1))] == 20.0

    def test_white_noise_power_is_flat(self, rng):
        # Unit-energy wavelets: expected power of unit-variance white noise is 1
        noise = rng.standard_normal(20000)
        power = np.abs(morlet_transform(noise, np.array([5.0, 40.0]), SFREQ)) ** 2
        means = power.mean(axis=1)
        np.testing.assert_allclose(means, 1.0, rtol=0.35)
        assert 0.5 < means[1] / means[0] < 2.0

    def test_deterministic(self, rng, freqs):
        signal = rng.standard_normal(1000)
        a = morlet_transform(signal, freqs, SFREQ)
        b = morlet_transform(signal, freqs, SFREQ)
        np.testing.assert_array_equal(a, b)

    def test_precomputed_wavelets_match(self, rng, freqs):
        signal = rng.standard_normal(1000)
        kernels = morlet_wavelets(freqs, SFREQ, 1000)
        np.testing.assert_allclose(
            morlet_transform(signal, wavelets=kernels),
            morlet_transform(signal, freqs, SFREQ),
        )

    def test_zero_signal_gives_zero_power(self, freqs):
        coefs = morlet_transform(np.zeros(1000), freqs, SFREQ)
        assert np.all(np.abs(coefs) ** 2 == 0)

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_non_finite_raises(self, rng, freqs, bad):
        signal = rng.standard_normal(1000)
        signal[10] = bad
        with pytest.raises(NumericError, match="non-finite"):
            morlet_transform(signal, freqs, SFREQ)

    def test_empty_raises(self, freqs):
        with pytest.raises(NumericError, match="zero duration"):
            morlet_transform(np.array([]), freqs, SFREQ)

    def test_wavelet_length_mismatch_raises(self, rng, freqs):
        kernels = morlet_wavelets(freqs, SFREQ, 500)
        with pytest.raises(ValueError, match="500 samples"):
            morlet_transform(rng.standard_normal(1000), wavelets=kernels)


class TestTimeVector:
    def test_spans_trial(self):
        t = time_vector(1000, SFREQ)
        assert t.size == 1000
        assert t[0] == 0.0
        assert t[-1] == pytest.approx(999 / SFREQ)

    def test_offset(self):
        t = time_vector(250, SFREQ, tmin=-0.5)
        assert t[0] == -0.5
        assert t[125] == pytest.approx(0.0)


class TestSubjectTfr:
    def test_shape(self, burst_trials, freqs):
        tfr = subject_tfr(burst_trials, freqs, SFREQ)
        assert isinstance(tfr, TimeFrequencyRepresentation)
        assert tfr.shape == (39, 1000, 2)
        assert tfr.n_trials == 2
        assert tfr.times.shape == (1000,)
        assert tfr.phase is None

    def test_trial_order_matches_columns(self, burst_trials, freqs):
        tfr = subject_tfr(burst_trials, freqs, SFREQ)
        for k in range(burst_trials.shape[1]):
            expected = np.abs(morlet_transform(burst_trials[:, k], freqs, SFREQ)) ** 2
            np.testing.assert_allclose(tfr.power[..., k], expected)

    def test_single_trial_vector(self, burst_trials, freqs):
        tfr = subject_tfr(burst_trials[:, 0], freqs, SFREQ)
        assert tfr.shape == (39, 1000, 1)

    def test_keep_phase(self, burst_trials, freqs):
        tfr = subject_tfr(burst_trials, freqs, SFREQ, keep_phase=True)
        assert tfr.phase.shape == tfr.power.shape
        assert np.all(np.abs(tfr.phase) <= np.pi)

    def test_tmin_shifts_times(self, burst_trials, freqs):
        tfr = subject_tfr(burst_trials, freqs, SFREQ, tmin=-1.0)
        assert tfr.times[0] == -1.0

    def test_read_only(self, burst_trials, freqs):
        tfr = subject_tfr(burst_trials, freqs, SFREQ)
        with pytest.raises(ValueError):
            tfr.power[0, 0, 0] = 1.0

    def test_failing_trial_is_named(self, burst_trials, freqs):
        trials = burst_trials.copy()
        trials[100, 1] = np.nan
        with pytest.raises(NumericError) as excinfo:
            subject_tfr(trials, freqs, SFREQ)
        assert excinfo.value.trial == 1
        assert "trial 1" in str(excinfo.value)

    def test_zero_duration_raises(self, freqs):
        with pytest.raises(NumericError, match="zero duration"):
            subject_tfr(np.zeros((0, 2)), freqs, SFREQ)

    def test_parallel_matches_serial(self, burst_trials, freqs):
        serial = subject_tfr(burst_trials, freqs, SFREQ)
        parallel = subject_tfr(burst_trials, freqs, SFREQ, num_workers=2)
        np.testing.assert_allclose(parallel.power, serial.power)
