"""SpectralEventDetector orchestrator for multi-subject event detection."""

import datetime
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from traceback import format_exc
from typing import Protocol

import numpy as np
import polars as pl
from rich.console import Console
from rich.progress import Progress

from spectralevents.config.loader import parse_spectralevents_config
from spectralevents.config.types import SpectralEventsConfig
from spectralevents.detection.subjectdata import SubjectData
from spectralevents.errors import ConfigurationError, NumericError
from spectralevents.features.events import (
    EVENT_SCHEMA,
    SpectralEvent,
    events_to_frame,
    find_spectral_events,
)
from spectralevents.features.thresholds import FACTOR_OF_MEDIAN, median_power
from spectralevents.features.timefrequency import (
    TimeFrequencyRepresentation,
    subject_tfr,
)
from spectralevents.validation import validate_inputs


class EventVisualizer(Protocol):
    """Callback run once all subjects are processed, e.g. to plot summaries.

    It receives the events, trial matrices and TFRs keyed by subject and
    must not modify them.
    """

    def __call__(
        self,
        events: Mapping[str, list[SpectralEvent]],
        trials: Mapping[str, np.ndarray],
        tfrs: Mapping[str, TimeFrequencyRepresentation],
    ) -> None: ...


@dataclass
class SubjectResult:
    """Everything computed for one subject.

    Attributes
    ----------
    subject : str
        Subject identifier.
    events : list[SpectralEvent]
        Detected events, ordered by trial, then frequency, then time.
    tfr : TimeFrequencyRepresentation
        Power surface ``(n_freqs, n_times, n_trials)`` with its axes.
    medians : np.ndarray
        Median power of each frequency over all times and trials.
    thresholds : np.ndarray
        Event threshold of each frequency.
    trials : np.ndarray
        Validated trial matrix ``(n_times, n_trials)``.
    labels : np.ndarray
        Class label of each trial.
    """

    subject: str
    events: list[SpectralEvent]
    tfr: TimeFrequencyRepresentation
    medians: np.ndarray
    thresholds: np.ndarray
    trials: np.ndarray
    labels: np.ndarray

    def events_frame(self) -> pl.DataFrame:
        """Events as a DataFrame with a leading ``subject`` column."""
        df = events_to_frame(self.events).with_columns(subject=pl.lit(self.subject))
        return df.select("subject", *EVENT_SCHEMA)


@dataclass
class SpectralEventsResult:
    """Per-subject results of a detection run, in input order.

    Attributes
    ----------
    subjects : dict[str, SubjectResult]
        Results of the subjects that were processed.
    failures : dict[str, str]
        Subjects skipped because of a :class:`NumericError`, with the reason.
    """

    subjects: dict[str, SubjectResult] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def events(self) -> dict[str, list[SpectralEvent]]:
        return {s: r.events for s, r in self.subjects.items()}

    @property
    def tfrs(self) -> dict[str, TimeFrequencyRepresentation]:
        return {s: r.tfr for s, r in self.subjects.items()}

    @property
    def trials(self) -> dict[str, np.ndarray]:
        return {s: r.trials for s, r in self.subjects.items()}

    def frames(self) -> dict[str, pl.DataFrame]:
        """One event table per subject."""
        return {s: r.events_frame() for s, r in self.subjects.items()}

    def to_frame(self) -> pl.DataFrame:
        """All events in one long-format table with a ``subject`` column."""
        frames = list(self.frames().values())
        if not frames:
            return pl.DataFrame(schema={"subject": pl.String, **EVENT_SCHEMA})
        return pl.concat(frames)


class SpectralEventDetector:
    """Detects spectral events in the trials of several subjects.

    For each subject in turn the detector builds the Morlet time-frequency
    representation of every trial, derives per-frequency factor-of-median
    thresholds from the whole subject, then extracts the events of each
    trial inside the event band.  Subjects are independent of each other.

    Parameters
    ----------
    config : str | Path | dict | SpectralEventsConfig
        Detection parameters: a path to a YAML file, a dict with the same
        structure, or a validated :class:`SpectralEventsConfig`.
    log_dir : str | Path | None
        If set, one log file per run is written here.
    num_workers : int
        Number of parallel worker processes for the wavelet transforms.
        ``1`` forces single-process (debug) mode.
    skip_failed : bool
        When ``True``, a subject raising :class:`NumericError` is logged,
        recorded in :attr:`SpectralEventsResult.failures` and skipped.
        Otherwise the error is raised.
    visualizer : EventVisualizer, optional
        Called with the results once every subject has been processed.
    debug : bool
        When ``True``, disables multiprocessing for easier debugging.
    console : rich.console.Console
        Console instance used for progress bars.

    Example
    -------
    ::

        from spectralevents import SpectralEventDetector, SubjectData

        detector = SpectralEventDetector("config.yaml", num_workers=4)
        result = detector.detect({"s01": SubjectData(trials, labels)})
        df = result.to_frame()
    """

    def __init__(
        self,
        config: str | Path | dict | SpectralEventsConfig,
        log_dir: str | Path | None = None,
        num_workers: int = 1,
        skip_failed: bool = False,
        visualizer: EventVisualizer | None = None,
        debug=False,
        console=Console(),
    ):
        self.config = parse_spectralevents_config(config)
        self.freqs = self.config.frequencies
        self.log_dir = log_dir
        self.num_workers = num_workers
        self.skip_failed = skip_failed
        self.visualizer = visualizer
        self.debug = debug
        if self.num_workers <= 1:
            self.debug = True
        self.console = console
        self.logger = logging.getLogger("spectralevents")

    def _init_logger(self, run_id: str):
        self.logger = logging.getLogger("spectralevents")
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)

        if self.log_dir is not None:
            log_path = Path(self.log_dir)
            log_path.mkdir(exist_ok=True, parents=True)
            onset_time = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")

            log_file = f"{run_id}_{onset_time}.log"

            file_handler = logging.FileHandler(log_path / log_file)
            formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)
            self.logger.setLevel(logging.INFO)
        else:
            self.logger.addHandler(logging.NullHandler())

    @staticmethod
    def _as_subject_data(subject: str, value) -> SubjectData:
        if isinstance(value, SubjectData):
            return value
        if isinstance(value, tuple) and len(value) == 2:
            return SubjectData(trials=value[0], labels=value[1])
        raise ConfigurationError(
            f"missing classification input for subject {subject!r}: expected "
            f"SubjectData or a (trials, labels) tuple, got {type(value).__name__}"
        )

    def detect_subject(self, subject: str, data: SubjectData) -> SubjectResult:
        """Run the transform, threshold and extraction stages for one subject.

        *data* must already be validated (see
        :func:`~spectralevents.validation.validate_inputs`).

        Raises
        ------
        NumericError
            If a trial cannot be transformed; ``subject`` and ``trial`` are set.
        """
        cfg = self.config

        tfr_start = time.perf_counter()
        try:
            tfr = subject_tfr(
                data.trials,
                self.freqs,
                cfg.sfreq,
                n_cycles=cfg.n_cycles,
                tmin=cfg.tmin,
                keep_phase=cfg.keep_phase,
                num_workers=self.num_workers,
                debug=self.debug,
                disable_progress=True,
                console=self.console,
            )
        except NumericError as exc:
            raise NumericError(exc.message, subject=subject, trial=exc.trial) from exc
        tfr_time = time.perf_counter() - tfr_start
        self.logger.info(
            f"TFR {subject}: shape {tfr.shape} completed in {tfr_time:.2f}s"
        )

        # Thresholds need every trial of the subject
        medians = median_power(tfr.power)
        thresholds = FACTOR_OF_MEDIAN * medians

        events_start = time.perf_counter()
        events = find_spectral_events(
            tfr.power,
            thresholds,
            tfr.freqs,
            tfr.times,
            event_band=cfg.event_band,
            find_method=cfg.find_method,
            labels=data.labels,
            medians=medians,
        )
        events_time = time.perf_counter() - events_start
        self.logger.info(
            f"Events {subject}: {len(events)} found with find-method "
            f"{int(cfg.find_method)} in {events_time:.2f}s"
        )

        return SubjectResult(
            subject=subject,
            events=events,
            tfr=tfr,
            medians=medians,
            thresholds=thresholds,
            trials=data.trials,
            labels=np.asarray(data.labels),
        )

    def detect(
        self,
        subjects: Mapping[str, SubjectData | tuple[np.ndarray, np.ndarray]],
        run_id: str = "spectral_events",
    ) -> SpectralEventsResult:
        """Detect spectral events for every subject.

        Parameters
        ----------
        subjects : Mapping[str, SubjectData | tuple]
            Trial matrix ``(n_times, n_trials)`` and class labels of each
            subject, as :class:`SubjectData` or ``(trials, labels)``.
            Subjects are processed and returned in mapping order.
        run_id : str
            Identifier of the run, used to name the log file.

        Returns
        -------
        SpectralEventsResult

        Raises
        ------
        ConfigurationError
            If any input is invalid.  Raised before any transform work.
        NumericError
            If a subject cannot be transformed and ``skip_failed`` is off.
        """
        self._init_logger(run_id)
        total_start = time.perf_counter()

        subject_data = {s: self._as_subject_data(s, v) for s, v in subjects.items()}
        validated = validate_inputs(
            subject_data, self.freqs, self.config.sfreq, self.config.event_band
        )

        self.logger.info(
            f"Starting spectral event detection for {len(validated)} subject(s)"
        )
        self.logger.info("=" * 50)

        result = SpectralEventsResult()
        with Progress(console=self.console, transient=True) as progress:
            task_id = progress.add_task("Detecting events...", total=len(validated))
            for subject, data in validated.items():
                try:
                    result.subjects[subject] = self.detect_subject(subject, data)
                except NumericError as exc:
                    self.logger.error(f"Error processing {subject}:\n{format_exc()}")
                    if not self.skip_failed:
                        raise
                    result.failures[subject] = str(exc)
                progress.advance(task_id)

        if self.visualizer is not None:
            self.visualizer(result.events, result.trials, result.tfrs)

        total_time = time.perf_counter() - total_start
        self.logger.info(f"Total detection time: {total_time / 60:.2f}m")

        return result
