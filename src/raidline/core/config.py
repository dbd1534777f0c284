from __future__ import annotations

from dataclasses import fields, replace
from typing import Any, Mapping

from raidline.contracts import MatchConfig
from raidline.core.errors import ConfigurationError

_CAMEL_CASE_OPTIONS = {
    "raidDuration": "raid_duration",
    "halfDuration": "half_duration",
    "intervalDuration": "interval_duration",
    "timeoutDuration": "timeout_duration",
    "maxTimeouts": "max_timeouts",
    "syncInterval": "sync_interval",
}


def default_match_formats() -> dict[str, MatchConfig]:
    return {
        "pro": MatchConfig(
            raid_duration=30,
            half_duration=20 * 60,
            interval_duration=5 * 60,
            timeout_duration=60,
            max_timeouts=2,
        ),
        "amateur": MatchConfig(
            raid_duration=30,
            half_duration=15 * 60,
            interval_duration=5 * 60,
            timeout_duration=60,
            max_timeouts=2,
        ),
        "junior": MatchConfig(
            raid_duration=30,
            half_duration=10 * 60,
            interval_duration=3 * 60,
            timeout_duration=30,
            max_timeouts=1,
        ),
    }


def validate_config(config: MatchConfig) -> MatchConfig:
    for f in fields(config):
        value = getattr(config, f.name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"{f.name} must be an integer, got {value!r}")
        if value <= 0:
            raise ConfigurationError(f"{f.name} must be positive, got {value}")
    return config


def config_from_mapping(options: Mapping[str, Any], base: MatchConfig | str = "pro") -> MatchConfig:
    """Build a validated config from snake_case or camelCase option names.

    ``base`` is either a config or the name of one of the preset formats;
    unknown option names are rejected rather than ignored.
    """
    if isinstance(base, str):
        formats = default_match_formats()
        if base not in formats:
            raise ConfigurationError(f"unknown match format '{base}'")
        base = formats[base]
    known = {f.name for f in fields(MatchConfig)}
    overrides: dict[str, Any] = {}
    for key, value in options.items():
        name = _CAMEL_CASE_OPTIONS.get(key, key)
        if name not in known:
            raise ConfigurationError(f"unrecognized configuration option '{key}'")
        overrides[name] = value
    return validate_config(replace(base, **overrides))
