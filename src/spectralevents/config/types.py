"""Type definitions for spectral event detection configuration.

This module defines the find-method enumeration and the Pydantic models that
carry parsed configuration through the detection pipeline.
"""

from enum import IntEnum
from typing import Any, Self

import numpy as np
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from spectralevents.errors import ConfigurationError

FrequencyBand = tuple[float, float]
"""A ``(low_hz, high_hz)`` frequency band specification."""


class FindMethod(IntEnum):
    """Policy used to turn above-threshold local maxima into events.

    ``PERMISSIVE`` (1)
        Every local maximum above threshold is an event, even when several
        of them sit inside the same contiguous burst.

    ``SUPPRESSIVE`` (2)
        Only the highest local maximum of each connected above-threshold
        region is kept: one event per contiguous burst.
    """

    PERMISSIVE = 1
    SUPPRESSIVE = 2

    @classmethod
    def coerce(cls, value: Any) -> "FindMethod":
        """Convert an integer or a (case-insensitive) name to a FindMethod.

        Raises
        ------
        ConfigurationError
            If *value* does not name one of the two find-methods.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
            if value.strip().isdigit():
                value = int(value)
        if not isinstance(value, bool) and isinstance(value, (int, np.integer)):
            try:
                return cls(int(value))
            except ValueError:
                pass
        valid = ", ".join(f"{m.value} ({m.name.lower()})" for m in cls)
        raise ConfigurationError(f"invalid find-method {value!r}; expected one of {valid}")


class FrequencyRange(BaseModel):
    """Inclusive, evenly spaced frequency grid ``start, start + step, ..., stop``.

    Attributes
    ----------
    start : float
        First frequency in Hz.
    stop : float
        Last frequency in Hz (included when it falls on the grid).
    step : float
        Spacing in Hz.
    """

    model_config = ConfigDict(frozen=True)

    start: float = Field(gt=0)
    stop: float = Field(gt=0)
    step: float = Field(gt=0)

    @model_validator(mode="after")
    def stop_after_start(self) -> Self:
        if self.stop < self.start:
            raise ValueError(f"stop ({self.stop}) must be >= start ({self.start})")
        return self

    def to_array(self) -> np.ndarray:
        n_steps = int(np.floor((self.stop - self.start) / self.step + 1e-9))
        return self.start + self.step * np.arange(n_steps + 1)


class SpectralEventsConfig(BaseModel):
    """Validated parameters of a spectral event detection run.

    Attributes
    ----------
    event_band : FrequencyBand
        ``(low, high)`` band in Hz inside which events are searched.
    freqs : list[float] | FrequencyRange
        Frequencies at which the wavelet transform is evaluated.
    sfreq : float
        Sampling frequency in Hz.
    find_method : FindMethod
        Overlap policy, see :class:`FindMethod`.  Accepts ``1``/``2`` or
        ``"permissive"``/``"suppressive"``.
    n_cycles : float
        Number of cycles of the Morlet wavelets (default 7).
    tmin : float
        Time in seconds of the first sample of each trial, i.e. the start of
        the segmentation window relative to stimulus onset.
    keep_phase : bool
        Keep the phase of the wavelet transform next to the power.

    Any invalid value raises :class:`~spectralevents.errors.ConfigurationError`.
    """

    model_config = ConfigDict(frozen=True)

    event_band: FrequencyBand
    freqs: list[float] | FrequencyRange
    sfreq: float = Field(gt=0)
    find_method: FindMethod = FindMethod.PERMISSIVE
    n_cycles: float = Field(default=7.0, gt=0)
    tmin: float = 0.0
    keep_phase: bool = False

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid configuration: {exc}") from exc

    @model_validator(mode="before")
    @classmethod
    def unwrap_numpy(cls, data: Any) -> Any:
        """Accept NumPy arrays and scalars where plain lists and numbers are expected."""
        if not isinstance(data, dict):
            return data
        unwrapped = {}
        for k, v in data.items():
            if isinstance(v, np.ndarray):
                v = v.tolist()
            elif isinstance(v, np.generic):
                v = v.item()
            unwrapped[k] = v
        return unwrapped

    @field_validator("find_method", mode="before")
    @classmethod
    def coerce_find_method(cls, value: Any) -> FindMethod:
        return FindMethod.coerce(value)

    @property
    def frequencies(self) -> np.ndarray:
        """Frequency vector as a float array."""
        if isinstance(self.freqs, FrequencyRange):
            return self.freqs.to_array()
        return np.asarray(self.freqs, dtype=float)
