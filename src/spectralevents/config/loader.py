"""YAML configuration loading for spectral event detection."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from spectralevents.config.types import SpectralEventsConfig
from spectralevents.errors import ConfigurationError


class PrettySafeLoader(yaml.SafeLoader):
    def construct_python_tuple(self, node):
        return tuple(self.construct_sequence(node))


def get_loader():
    """Add constructors to PyYAML loader."""
    loader = PrettySafeLoader
    loader.add_constructor(
        "tag:yaml.org,2002:python/tuple", PrettySafeLoader.construct_python_tuple
    )
    return loader


def parse_config(config_file: str | Path) -> dict[str, Any]:
    """Read a YAML config file.

    Raises
    ------
    ConfigurationError
        If the file contains invalid YAML or is not a mapping.
    """
    f = Path(config_file)

    with open(f, "r") as stream:
        try:
            config = yaml.load(stream, Loader=get_loader())
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"invalid YAML in {f}: {exc}") from exc

    if not isinstance(config, dict):
        raise ConfigurationError(f"{f} must contain a mapping, got {type(config).__name__}")
    return config


def parse_spectralevents_config(
    config: str | Path | dict | SpectralEventsConfig,
) -> SpectralEventsConfig:
    """Parse a detection config from a YAML file or dict.

    Expected keys::

        event_band: [15, 25]        # Hz, ascending
        freqs:                      # explicit list or inclusive range
          start: 2
          stop: 40
          step: 1
        sfreq: 250
        find_method: 1              # 1/permissive or 2/suppressive
        n_cycles: 7                 # optional
        tmin: 0.0                   # optional
        keep_phase: false           # optional

    Parameters
    ----------
    config : str | Path | dict | SpectralEventsConfig
        Path to a YAML file, a dict with the same structure, or an already
        validated config (returned unchanged).

    Returns
    -------
    SpectralEventsConfig

    Raises
    ------
    ConfigurationError
        If the file cannot be parsed or a value is invalid.
    """
    if isinstance(config, SpectralEventsConfig):
        return config
    if isinstance(config, dict):
        raw = config
    else:
        raw = parse_config(config)

    try:
        return SpectralEventsConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc
