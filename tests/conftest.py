import mne
import numpy as np
import pytest

SFREQ = 250.0
N_TIMES = 1000


def make_burst_trials(
    rng,
    n_trials=2,
    n_times=N_TIMES,
    sfreq=SFREQ,
    burst_freq=20.0,
    burst_center=2.0,
    burst_width=0.1,
    amplitude=5.0,
):
    """White noise trials with a Gaussian-windowed sine burst in each one."""
    t = np.arange(n_times) / sfreq
    envelope = amplitude * np.exp(-((t - burst_center) ** 2) / (2 * burst_width**2))
    burst = envelope * np.sin(2 * np.pi * burst_freq * t)
    return rng.standard_normal((n_times, n_trials)) + burst[:, np.newaxis]


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def freqs():
    """2-40 Hz in 1 Hz steps (39 frequencies)."""
    return np.arange(2.0, 41.0, 1.0)


@pytest.fixture
def burst_trials(rng):
    """Two 4 s trials at 250 Hz with a 20 Hz burst centred on 2 s."""
    return make_burst_trials(rng)


@pytest.fixture
def zero_trials():
    """Two all-zero trials, no power anywhere."""
    return np.zeros((N_TIMES, 2))


@pytest.fixture
def config_dict():
    return {
        "event_band": [15, 25],
        "freqs": {"start": 2, "stop": 40, "step": 1},
        "sfreq": SFREQ,
        "find_method": 1,
        "n_cycles": 7,
    }


@pytest.fixture
def config_file(tmp_path):
    """Write a minimal YAML config to a temp file and return its path."""
    config = tmp_path / "spectral_events.yaml"
    config.write_text("""\
event_band: !!python/tuple [15, 25]
freqs:
  start: 2
  stop: 40
  step: 1
sfreq: 250
find_method: suppressive
""")
    return config


@pytest.fixture
def synthetic_epochs():
    """Minimal MNE Epochs object with two conditions."""
    sfreq = SFREQ
    n_epochs, n_channels, n_times = 4, 3, 500
    ch_names = ["C3", "Cz", "C4"]
    info = mne.create_info(ch_names=ch_names, sfreq=sfreq, ch_types="eeg")
    rng = np.random.default_rng(42)
    data = rng.standard_normal((n_epochs, n_channels, n_times)) * 1e-6
    events = np.array([[0, 0, 1], [500, 0, 1], [1000, 0, 2], [1500, 0, 2]])
    event_id = {"standard": 1, "deviant": 2}
    return mne.EpochsArray(
        data, info, events=events, tmin=-0.5, event_id=event_id, verbose=False
    )
