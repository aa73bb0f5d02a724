from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import math
import re

import yaml

TODAY_MODES = ("utc", "display")

_GO_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|h|m|s)")
_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)
_GO_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}


class ConfigError(ValueError):
    """Raised when configuration or startup assets are malformed."""


@dataclass(frozen=True)
class CalendarSourceConfig:
    url: str
    max_events: int = 0


@dataclass
class AggregationConfig:
    timezone: str = ""
    max_days: int = 5
    max_events: int = 20
    interval: timedelta = timedelta(minutes=30)
    render_interval: timedelta = timedelta(minutes=1)
    request_timeout: timedelta = timedelta(seconds=30)
    today_mode: str = "utc"
    calendars: List[CalendarSourceConfig] = field(default_factory=list)


@dataclass
class OutputConfig:
    html: str = ""
    image: str = ""
    css: str = ""
    template: str = ""
    width: int = 800
    height: int = 480
    inky: bool = False
    rotate: int = 0
    border: str = "white"


@dataclass
class AppConfig:
    aggregation: AggregationConfig
    output: OutputConfig


def parse_duration(value: Any) -> timedelta:
    """Parse "30m", "1h30m", "PT30M" or a plain number of seconds."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = str(value).strip()
    if not text:
        raise ConfigError("invalid duration: empty string")

    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is not None:
        if not math.isfinite(seconds):
            raise ConfigError(f"invalid duration: {text!r}")
        return timedelta(seconds=seconds)

    iso = _ISO_DURATION.match(text.upper())
    if iso and text.upper() not in ("P", "PT"):
        parts = {k: float(v) for k, v in iso.groupdict().items() if v}
        return timedelta(**parts)

    pos = 0
    total = 0.0
    for m in _GO_DURATION_PART.finditer(text):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _GO_UNITS[m.group(2)]
        pos = m.end()
    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration: {text!r}")
    return timedelta(seconds=total)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    if not name:
        local = datetime.now().astimezone().tzinfo
        if local is None:
            raise ConfigError("could not determine the local timezone")
        return local
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"could not parse timezone {name!r}") from exc


def _int(data: Dict[str, Any], key: str, default: int) -> int:
    raw = data.get(key, default)
    if raw is None:
        return default
    if isinstance(raw, bool):
        raise ConfigError(f"{key} must be an integer, got {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _bool(data: Dict[str, Any], key: str, default: bool) -> bool:
    raw = data.get(key, default)
    if raw is None:
        return default
    if not isinstance(raw, bool):
        raise ConfigError(f"{key} must be true or false, got {raw!r}")
    return raw


def _non_negative_int(data: Dict[str, Any], key: str, default: int) -> int:
    value = _int(data, key, default)
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def _positive_duration(data: Dict[str, Any], key: str, default: timedelta) -> timedelta:
    raw = data.get(key)
    value = default if raw is None else parse_duration(raw)
    if value <= timedelta(0):
        raise ConfigError(f"{key} must be positive")
    return value


def _parse_calendars(raw: Any) -> List[CalendarSourceConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("calendars must be a list")

    calendars: List[CalendarSourceConfig] = []
    for idx, item in enumerate(raw):
        if isinstance(item, str):
            item = {"url": item}
        if not isinstance(item, dict):
            raise ConfigError(f"calendars[{idx}] must be a mapping")
        url = str(item.get("url") or "").strip()
        if not url:
            raise ConfigError(f"calendars[{idx}].url is required")
        calendars.append(CalendarSourceConfig(
            url=url,
            max_events=_non_negative_int(item, "maxEvents", 0),
        ))
    return calendars


def parse_config(data: Optional[Dict[str, Any]]) -> AppConfig:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a mapping")

    today_mode = str(data.get("todayMode") or "utc").lower()
    if today_mode not in TODAY_MODES:
        raise ConfigError(f"todayMode must be one of {', '.join(TODAY_MODES)}, got {today_mode!r}")

    max_days = _non_negative_int(data, "maxDays", 5)
    if max_days == 0:
        raise ConfigError("maxDays must be positive")

    output = data.get("output") or {}
    if not isinstance(output, dict):
        raise ConfigError("output must be a mapping")

    return AppConfig(
        aggregation=AggregationConfig(
            timezone=str(data.get("timezone") or ""),
            max_days=max_days,
            max_events=_non_negative_int(data, "maxEvents", 20),
            interval=_positive_duration(data, "interval", timedelta(minutes=30)),
            render_interval=_positive_duration(data, "renderInterval", timedelta(minutes=1)),
            request_timeout=_positive_duration(data, "requestTimeout", timedelta(seconds=30)),
            today_mode=today_mode,
            calendars=_parse_calendars(data.get("calendars")),
        ),
        output=OutputConfig(
            html=str(output.get("html") or ""),
            image=str(output.get("image") or ""),
            css=str(output.get("css") or ""),
            template=str(output.get("template") or ""),
            width=_non_negative_int(output, "width", 800),
            height=_non_negative_int(output, "height", 480),
            inky=_bool(output, "inky", False),
            rotate=_int(output, "rotate", 0),
            border=str(output.get("border", "white")),
        ),
    )


def load_config(path: str) -> AppConfig:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"could not read config {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"could not parse config {path}: {exc}") from exc
    return parse_config(data)
