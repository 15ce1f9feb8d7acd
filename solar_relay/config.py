"""
Runtime settings for the relay.

Settings come from three layers, later ones winning: built-in defaults, an
optional YAML file, then SOLAR_RELAY_* environment variables. The CLI applies
its own flags on top via ``Settings.merged``.

Example file::

    destinations:
      - 127.0.0.1:6000
      - host: 192.168.1.20
        port: 7000
    interval: 60
    pacing: 0.2
    timeout: 10
    feeds:
      kp: https://services.swpc.noaa.gov/products/noaa-planetary-k-index.json
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml

from .feeds import FEEDS, PACING_DELAY, FeedDescriptor
from .fetch import DEFAULT_TIMEOUT, USER_AGENT
from .relay import Destination, parse_destination

CONFIG_ENV = "SOLAR_RELAY_CONFIG"
DESTINATIONS_ENV = "SOLAR_RELAY_DESTINATIONS"
INTERVAL_ENV = "SOLAR_RELAY_INTERVAL"
TIMEOUT_ENV = "SOLAR_RELAY_TIMEOUT"

DEFAULT_DESTINATIONS = (Destination("127.0.0.1", 6000), Destination("127.0.0.1", 6001))
DEFAULT_INTERVAL = 60.0

KNOWN_KEYS = {"destinations", "interval", "pacing", "timeout", "user_agent", "display", "feeds"}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    destinations: Tuple[Destination, ...] = DEFAULT_DESTINATIONS
    interval: float = DEFAULT_INTERVAL
    pacing: float = PACING_DELAY
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = USER_AGENT
    display: bool = True
    feeds: Tuple[FeedDescriptor, ...] = field(default=FEEDS)

    def merged(self, **changes: Any) -> "Settings":
        """Return a copy with every non-None keyword applied."""
        updates = {key: value for key, value in changes.items() if value is not None}
        if "destinations" in updates:
            updates["destinations"] = parse_destinations(updates["destinations"])
        settings = replace(self, **updates)
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.destinations:
            raise ConfigError("At least one destination is required")
        for key in ("interval", "pacing", "timeout"):
            if not math.isfinite(getattr(self, key)):
                raise ConfigError(f"{key} must be a finite number, got {getattr(self, key)}")
        if self.interval <= 0:
            raise ConfigError(f"interval must be positive, got {self.interval}")
        if self.pacing < 0:
            raise ConfigError(f"pacing must not be negative, got {self.pacing}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")


def _destination(value: Any) -> Destination:
    if isinstance(value, Destination):
        return value
    try:
        if isinstance(value, Mapping):
            return parse_destination(f"{value['host']}:{value['port']}")
        return parse_destination(str(value))
    except (KeyError, ValueError) as exc:
        raise ConfigError(f"Invalid destination {value!r}: {exc}") from exc


def parse_destinations(value: Any) -> Tuple[Destination, ...]:
    if isinstance(value, str):
        value = [part for part in value.split(",") if part.strip()]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"destinations must be a list, got {type(value).__name__}")
    return tuple(_destination(item) for item in value)


def _number(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number, got {value!r}") from exc


def _feed_overrides(value: Any) -> Tuple[FeedDescriptor, ...]:
    if not isinstance(value, Mapping):
        raise ConfigError("feeds must map feed names to URLs")
    known = {feed.name for feed in FEEDS}
    unknown = sorted(set(value) - known)
    if unknown:
        raise ConfigError(f"Unknown feed(s) in config: {', '.join(unknown)}")
    return tuple(feed.with_url(str(value[feed.name])) if feed.name in value else feed for feed in FEEDS)


def load_yaml(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def settings_from_mapping(data: Mapping[str, Any], base: Settings | None = None) -> Settings:
    unknown = sorted(set(data) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")
    updates: Dict[str, Any] = {}
    if "destinations" in data:
        updates["destinations"] = parse_destinations(data["destinations"])
    for key in ("interval", "pacing", "timeout"):
        if key in data:
            updates[key] = _number(key, data[key])
    if "user_agent" in data:
        updates["user_agent"] = str(data["user_agent"])
    if "display" in data:
        updates["display"] = bool(data["display"])
    if "feeds" in data:
        updates["feeds"] = _feed_overrides(data["feeds"])
    settings = replace(base or Settings(), **updates)
    settings.validate()
    return settings


def load_settings(path: Path | None = None, env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env

    if path is None and env.get(CONFIG_ENV, "").strip():
        path = Path(env[CONFIG_ENV].strip()).expanduser()

    settings = Settings()
    if path is not None:
        settings = settings_from_mapping(load_yaml(path), settings)

    env_updates: Dict[str, Any] = {}
    if env.get(DESTINATIONS_ENV, "").strip():
        env_updates["destinations"] = env[DESTINATIONS_ENV]
    if env.get(INTERVAL_ENV, "").strip():
        env_updates["interval"] = env[INTERVAL_ENV]
    if env.get(TIMEOUT_ENV, "").strip():
        env_updates["timeout"] = env[TIMEOUT_ENV]
    if env_updates:
        settings = settings_from_mapping(env_updates, settings)

    return settings
