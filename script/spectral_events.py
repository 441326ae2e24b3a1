#!/usr/bin/env python
"""Example script: detect spectral events in epoched EEG using spectralevents.

Loads every ``*-epo.fif`` file from ``data/``, averages the configured
channels into one time series per epoch, runs the detector configured in
``spectral_events.yaml`` and writes one parquet file of events per
recording.
"""

import sys
import time
from pathlib import Path

import mne

from spectralevents import SpectralEventDetector, SubjectData, parse_spectralevents_config
from spectralevents.utils import save_events, segment_times

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
CONFIG_FILE = SCRIPT_DIR / "spectral_events.yaml"
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = SCRIPT_DIR / "output"
LOG_DIR = OUTPUT_DIR / "logs"

# Sensorimotor channels averaged into the trial signal
PICKS = ["C3", "Cz", "C4"]
# Analysis window relative to the epoch event, in seconds
TIME_WINDOW = (0.0, 1.0)


def main() -> None:
    # ------------------------------------------------------------------
    # 1. Parse the detection config
    # ------------------------------------------------------------------
    config = parse_spectralevents_config(CONFIG_FILE)

    # ------------------------------------------------------------------
    # 2. Discover epoch files
    # ------------------------------------------------------------------
    data_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else DATA_DIR
    epoch_files = sorted(data_dir.rglob("*-epo.fif"))
    if not epoch_files:
        print(f"No epoch files found in {data_dir}")
        return

    print(f"Loading {len(epoch_files)} recording(s) from {data_dir}\n")

    # ------------------------------------------------------------------
    # 3. Build one trial matrix per recording
    # ------------------------------------------------------------------
    # Sample times of the segmentation window; every trial is cut to this length
    seg_times = segment_times(TIME_WINDOW, config.sfreq)

    subjects: dict[str, SubjectData] = {}
    for epo_path in epoch_files:
        epochs = mne.read_epochs(epo_path, preload=True, verbose=False)
        if epochs.info["sfreq"] != config.sfreq:
            epochs.resample(config.sfreq, verbose=False)
        picks = [ch for ch in PICKS if ch in epochs.ch_names] or None
        subject = epo_path.name.removesuffix("-epo.fif")
        data = SubjectData.from_epochs(epochs, picks=picks, time_window=TIME_WINDOW)
        subjects[subject] = SubjectData(data.trials[: seg_times.size], data.labels)
        print(
            f"  {subject}: {subjects[subject].n_trials} trials of "
            f"{subjects[subject].n_times} samples"
        )

    # ------------------------------------------------------------------
    # 4. Detect events
    # ------------------------------------------------------------------
    detector = SpectralEventDetector(
        config.model_copy(update={"tmin": float(seg_times[0])}),
        log_dir=LOG_DIR,
        num_workers=4,
        skip_failed=True,
    )
    start = time.perf_counter()
    result = detector.detect(subjects, run_id="spectral_events")
    elapsed = time.perf_counter() - start

    # ------------------------------------------------------------------
    # 5. Display and save results
    # ------------------------------------------------------------------
    df = result.to_frame()
    print("=" * 60)
    print(f"Total events: {len(df)} in {elapsed:.2f}s")
    for subject, reason in result.failures.items():
        print(f"Skipped {subject}: {reason}")
    print("=" * 60)
    print(df.head(20))

    paths = save_events(result.frames(), OUTPUT_DIR)
    print(f"\nEvents saved to {OUTPUT_DIR} ({len(paths)} file(s))")


if __name__ == "__main__":
    main()
