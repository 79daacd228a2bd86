from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable

import voluptuous as vol
from voluptuous.humanize import humanize_error

from .const import (
    CONF_API_KEY,
    CONF_AUTO_BOOST,
    CONF_CITY,
    CONF_CLIENT_ID,
    CONF_COUNTRY,
    CONF_DATABASE,
    CONF_DATABASE_NAME,
    CONF_ENABLED,
    CONF_HIVE_SSO,
    CONF_INTERVAL,
    CONF_LOG_LEVEL,
    CONF_MIN_TEMPERATURE,
    CONF_PASSWORD,
    CONF_POOL_ID,
    CONF_TARGET_DURATION,
    CONF_TARGET_TEMPERATURE,
    CONF_THERMOSTAT,
    CONF_THERMOSTAT_ID,
    CONF_UNITS,
    CONF_URI,
    CONF_USERNAME,
    CONF_WEATHER,
    DEFAULT_LOG_LEVEL,
    LOG_LEVELS,
)
from .exceptions import ConfigError

_LOGGER = logging.getLogger(__name__)

# -----------------------------
# Durations ("90s", "10m", "1h30m")
# -----------------------------

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_UNIT_PATTERN = "ns|us|µs|μs|ms|s|m|h"
_DURATION_RE = re.compile(rf"(?:(?:\d+\.?\d*|\.\d+)(?:{_UNIT_PATTERN}))+")
_DURATION_PART_RE = re.compile(rf"(\d+\.?\d*|\.\d+)({_UNIT_PATTERN})")


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration string into a timedelta.

    A duration is an optionally signed sequence of decimal numbers, each with a
    unit suffix, e.g. "300ms", "1.5h" or "2h45m". A bare "0" is also accepted.
    """
    s = value.strip()
    sign = 1.0
    if s[:1] in ("+", "-"):
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]

    if s == "0":
        return timedelta(0)

    if not s or not _DURATION_RE.fullmatch(s):
        raise ValueError(f"invalid duration {value!r}")

    seconds = sum(float(num) * _DURATION_UNITS[unit] for num, unit in _DURATION_PART_RE.findall(s))
    try:
        return timedelta(seconds=sign * seconds)
    except OverflowError as err:
        raise ValueError(f"invalid duration {value!r}: out of range") from err


def format_duration(value: timedelta | None) -> str:
    if value is None:
        return ""

    total = value.total_seconds()
    if total < 1 or total != int(total):
        return f"{total:g}s"

    hours, rest = divmod(int(total), 3600)
    minutes, seconds = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + f"{seconds}s"


def _duration(value: Any) -> timedelta | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise vol.Invalid("expected a duration string such as '10m'")
    try:
        return parse_duration(value)
    except ValueError as err:
        raise vol.Invalid(str(err)) from err


# -----------------------------
# Schema
# -----------------------------

def _require_when_enabled(*keys: str) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Enabled feeds need a positive interval plus the given non-empty keys."""

    def validator(section: dict[str, Any]) -> dict[str, Any]:
        if not section[CONF_ENABLED]:
            return section

        interval = section[CONF_INTERVAL]
        if interval is None or interval <= timedelta(0):
            raise vol.Invalid("must be a positive duration when enabled", path=[CONF_INTERVAL])

        for key in keys:
            if not section.get(key):
                raise vol.Invalid("required when enabled", path=[key])

        return section

    return validator


def _require_sso_when_enabled(section: dict[str, Any]) -> dict[str, Any]:
    if not section[CONF_ENABLED]:
        return section

    sso = section[CONF_HIVE_SSO]
    for key in (CONF_POOL_ID, CONF_CLIENT_ID):
        if not sso.get(key):
            raise vol.Invalid("required when enabled", path=[CONF_HIVE_SSO, key])
    return section


AUTO_BOOST_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_ENABLED, default=False): vol.Boolean(),
        vol.Optional(CONF_MIN_TEMPERATURE, default=0.0): vol.Coerce(float),
        vol.Optional(CONF_TARGET_DURATION, default=0): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional(CONF_TARGET_TEMPERATURE, default=0): vol.Coerce(int),
    },
    extra=vol.REMOVE_EXTRA,
)

HIVE_SSO_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_POOL_ID, default=""): str,
        vol.Optional(CONF_CLIENT_ID, default=""): str,
    },
    extra=vol.REMOVE_EXTRA,
)

THERMOSTAT_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Optional(CONF_ENABLED, default=False): vol.Boolean(),
            vol.Optional(CONF_INTERVAL, default=""): _duration,
            vol.Optional(CONF_USERNAME, default=""): str,
            vol.Optional(CONF_PASSWORD, default=""): str,
            vol.Optional(CONF_THERMOSTAT_ID, default=""): str,
            vol.Optional(CONF_AUTO_BOOST, default={}): AUTO_BOOST_SCHEMA,
            vol.Optional(CONF_HIVE_SSO, default={}): HIVE_SSO_SCHEMA,
        },
        extra=vol.REMOVE_EXTRA,
    ),
    _require_when_enabled(CONF_USERNAME, CONF_PASSWORD, CONF_THERMOSTAT_ID),
    _require_sso_when_enabled,
)

WEATHER_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Optional(CONF_ENABLED, default=False): vol.Boolean(),
            vol.Optional(CONF_INTERVAL, default=""): _duration,
            vol.Optional(CONF_CITY, default=""): str,
            vol.Optional(CONF_COUNTRY, default=""): str,
            vol.Optional(CONF_API_KEY, default=""): str,
            vol.Optional(CONF_UNITS, default=""): str,
        },
        extra=vol.REMOVE_EXTRA,
    ),
    _require_when_enabled(CONF_CITY, CONF_API_KEY),
)

DATABASE_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_URI, default=""): str,
        vol.Optional(CONF_USERNAME, default=""): str,
        vol.Optional(CONF_PASSWORD, default=""): str,
        vol.Optional(CONF_DATABASE_NAME, default=""): str,
    },
    extra=vol.REMOVE_EXTRA,
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_THERMOSTAT, default={}): THERMOSTAT_SCHEMA,
        vol.Optional(CONF_WEATHER, default={}): WEATHER_SCHEMA,
        vol.Optional(CONF_DATABASE, default={}): DATABASE_SCHEMA,
        vol.Optional(CONF_LOG_LEVEL, default=DEFAULT_LOG_LEVEL): vol.All(vol.Upper, vol.In(LOG_LEVELS)),
    },
    extra=vol.REMOVE_EXTRA,
)


# -----------------------------
# Typed config
# -----------------------------

@dataclass(frozen=True)
class AutoBoostConfig:
    enabled: bool = False
    min_temperature: float = 0.0
    target_duration: int = 0  # minutes
    target_temperature: int = 0

    def should_boost(self, reading: float) -> bool:
        return self.enabled and reading <= self.min_temperature


@dataclass(frozen=True)
class HiveSSOConfig:
    pool_id: str = ""
    client_id: str = ""


@dataclass(frozen=True)
class ThermostatConfig:
    enabled: bool = False
    interval: timedelta | None = None
    username: str = ""
    password: str = ""
    thermostat_id: str = ""
    auto_boost: AutoBoostConfig = field(default_factory=AutoBoostConfig)
    hive_sso: HiveSSOConfig = field(default_factory=HiveSSOConfig)


@dataclass(frozen=True)
class WeatherConfig:
    enabled: bool = False
    interval: timedelta | None = None
    city: str = ""
    country: str = ""
    api_key: str = ""
    units: str = ""


@dataclass(frozen=True)
class DatabaseConfig:
    uri: str = ""
    username: str = ""
    password: str = ""
    database: str = ""


@dataclass(frozen=True)
class Config:
    thermostat: ThermostatConfig = field(default_factory=ThermostatConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    log_level: str = DEFAULT_LOG_LEVEL

    def summary(self) -> str:
        """Human readable summary of the effective settings (no secrets)."""
        t = self.thermostat
        w = self.weather
        return (
            "Config Values set\n"
            f"  Thermostat Enabled: {t.enabled}\n"
            f"  Thermostat Interval: {format_duration(t.interval)}\n"
            f"  AutoBoost Enabled: {t.auto_boost.enabled}\n"
            f"  AutoBoost Min Temperature: {t.auto_boost.min_temperature:f}\n"
            f"  AutoBoost Target: {t.auto_boost.target_temperature} for {t.auto_boost.target_duration}m\n"
            f"  Weather Enabled: {w.enabled}\n"
            f"  Weather Interval: {format_duration(w.interval)}\n"
            f"  Database: {self.database.uri} ({self.database.database})\n"
        )


def config_from_dict(data: Any) -> Config:
    try:
        conf = CONFIG_SCHEMA(data)
    except vol.Invalid as err:
        raise ConfigError(f"invalid config: {humanize_error(data, err)}") from err

    t = conf[CONF_THERMOSTAT]
    boost = t[CONF_AUTO_BOOST]
    sso = t[CONF_HIVE_SSO]
    w = conf[CONF_WEATHER]
    db = conf[CONF_DATABASE]

    return Config(
        thermostat=ThermostatConfig(
            enabled=t[CONF_ENABLED],
            interval=t[CONF_INTERVAL],
            username=t[CONF_USERNAME],
            password=t[CONF_PASSWORD],
            thermostat_id=t[CONF_THERMOSTAT_ID],
            auto_boost=AutoBoostConfig(
                enabled=boost[CONF_ENABLED],
                min_temperature=boost[CONF_MIN_TEMPERATURE],
                target_duration=boost[CONF_TARGET_DURATION],
                target_temperature=boost[CONF_TARGET_TEMPERATURE],
            ),
            hive_sso=HiveSSOConfig(pool_id=sso[CONF_POOL_ID], client_id=sso[CONF_CLIENT_ID]),
        ),
        weather=WeatherConfig(
            enabled=w[CONF_ENABLED],
            interval=w[CONF_INTERVAL],
            city=w[CONF_CITY],
            country=w[CONF_COUNTRY],
            api_key=w[CONF_API_KEY],
            units=w[CONF_UNITS],
        ),
        database=DatabaseConfig(
            uri=db[CONF_URI],
            username=db[CONF_USERNAME],
            password=db[CONF_PASSWORD],
            database=db[CONF_DATABASE_NAME],
        ),
        log_level=conf[CONF_LOG_LEVEL],
    )


def load_config(path: str | os.PathLike[str]) -> Config:
    """Read and validate the JSON config file. Raises ConfigError."""
    try:
        with open(path, encoding="utf-8") as fh:
            raw = fh.read()
    except OSError as err:
        raise ConfigError(f"unable to open file {path}: {err}") from err

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as err:
        raise ConfigError(f"unable to parse {path}: {err}") from err

    conf = config_from_dict(data)
    _LOGGER.debug("Loaded config from %s", path)
    return conf
