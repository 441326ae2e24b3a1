"""Configuration parsing for spectral event detection."""

from spectralevents.config.loader import parse_config, parse_spectralevents_config
from spectralevents.config.types import (
    FindMethod,
    FrequencyBand,
    FrequencyRange,
    SpectralEventsConfig,
)


def get_config_schema() -> dict:
    """Return the JSON schema for SpectralEventsConfig.

    Useful for validating YAML configs or generating documentation.

    Example
    -------
    >>> import json
    >>> schema = get_config_schema()
    >>> print(json.dumps(schema, indent=2))
    """
    return SpectralEventsConfig.model_json_schema()


__all__ = [
    "get_config_schema",
    "parse_config",
    "parse_spectralevents_config",
    "FindMethod",
    "FrequencyBand",
    "FrequencyRange",
    "SpectralEventsConfig",
]
