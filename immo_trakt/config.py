from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import yaml

from immo_trakt.errors import ConfigError

DEFAULT_CONFIG_FILE = "config.yml"
DEFAULT_FREQUENCY = "1m"
DEFAULT_REQUEST_TIMEOUT = 30.0

_UNIT_SECONDS = {
    "s": 1,
    "sec": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hour": 3600,
    "hours": 3600,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")


@dataclass(frozen=True)
class FilterConfig:
    """Exclusion rules applied to every polled listing."""

    exclude_wbs: bool = False
    exclude_tausch: bool = False
    rent_max: Optional[float] = None
    exclude_keywords: Tuple[str, ...] = ()

    @property
    def banned_terms(self) -> Tuple[str, ...]:
        terms = []
        if self.exclude_wbs:
            terms.append("wbs")
        if self.exclude_tausch:
            terms.append("tausch")
        terms.extend(kw.lower() for kw in self.exclude_keywords if kw)
        return tuple(terms)


@dataclass
class SearchConfig:
    """ImmobilienScout24 search to poll."""

    search_url: str
    filters: FilterConfig = field(default_factory=FilterConfig)
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT


@dataclass
class EmailConfig:
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host and self.recipient)


@dataclass
class AppConfig:
    """Main application configuration."""

    search: SearchConfig
    frequency: str = DEFAULT_FREQUENCY
    # Notify about listings found on the very first poll as well
    include_existing_offers: bool = False
    telegram_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    slack_webhook_url: Optional[str] = None
    discord_webhook_url: Optional[str] = None
    email: EmailConfig = field(default_factory=EmailConfig)

    @property
    def interval_seconds(self) -> float:
        return parse_frequency(self.frequency)


def parse_frequency(value: str | int | float) -> float:
    """Convert a polling frequency into seconds.

    Accepts plain seconds (``90``), compact durations (``"30s"``, ``"1m"``,
    ``"1h30m"``) and spelled-out ones (``"1 minute"``, ``"5 minutes"``).
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid frequency: {value!r}")

    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip().lower()
        if not text:
            raise ConfigError("Frequency must not be empty")

        try:
            seconds = float(text)
        except ValueError:
            seconds = 0.0
            position = 0
            for match in _DURATION_PART.finditer(text):
                if text[position:match.start()].strip():
                    raise ConfigError(f"Invalid frequency: {value!r}")
                amount, unit = match.groups()
                if unit not in _UNIT_SECONDS:
                    raise ConfigError(f"Unknown frequency unit '{unit}' in {value!r}")
                seconds += float(amount) * _UNIT_SECONDS[unit]
                position = match.end()
            if position == 0 or text[position:].strip():
                raise ConfigError(f"Invalid frequency: {value!r}")

    if seconds <= 0:
        raise ConfigError(f"Frequency must be positive, got {value!r}")
    return seconds


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open() as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return section


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _validate_search_url(url: Optional[str]) -> str:
    if not url:
        raise ConfigError("immobilien_scout.search is required")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"immobilien_scout.search is not a valid URL: {url}")
    return url


def _load_filters(section: Dict[str, Any]) -> FilterConfig:
    rent_max = section.get("rent_max")
    if rent_max is not None:
        try:
            rent_max = float(rent_max)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"immobilien_scout.rent_max must be a number, got {rent_max!r}") from e
        if rent_max < 0:
            raise ConfigError("immobilien_scout.rent_max must not be negative")

    keywords = section.get("exclude_keywords") or []
    if isinstance(keywords, str):
        keywords = [keywords]

    return FilterConfig(
        exclude_wbs=bool(section.get("exclude_wbs", False)),
        exclude_tausch=bool(section.get("exclude_tausch", False)),
        rent_max=rent_max,
        exclude_keywords=tuple(str(kw) for kw in keywords),
    )


def load_config(path: str | Path = DEFAULT_CONFIG_FILE) -> AppConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    raw = _load_yaml(config_path)

    general = _section(raw, "immo_trakt")
    telegram = _section(raw, "telegram")
    email = _section(raw, "email")
    scout = _section(raw, "immobilien_scout")

    frequency = os.getenv("IMMO_TRAKT_FREQUENCY", general.get("frequency", DEFAULT_FREQUENCY))
    parse_frequency(frequency)

    timeout = general.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"request_timeout_seconds must be a number, got {timeout!r}") from e
    if timeout <= 0:
        raise ConfigError("request_timeout_seconds must be positive")

    search = SearchConfig(
        search_url=_validate_search_url(os.getenv("IMMO_SEARCH_URL", scout.get("search"))),
        filters=_load_filters(scout),
        request_timeout_seconds=timeout,
    )

    return AppConfig(
        search=search,
        frequency=str(frequency),
        include_existing_offers=bool(general.get("include_existing_offers", False)),
        telegram_token=_optional_str(os.getenv("TELEGRAM_TOKEN", telegram.get("token"))),
        telegram_chat_id=_optional_str(os.getenv("TELEGRAM_CHAT_ID", telegram.get("chat_id"))),
        slack_webhook_url=_optional_str(os.getenv("SLACK_WEBHOOK_URL", raw.get("slack_webhook_url"))),
        discord_webhook_url=_optional_str(os.getenv("DISCORD_WEBHOOK_URL", raw.get("discord_webhook_url"))),
        email=EmailConfig(
            smtp_host=_optional_str(email.get("smtp_host")),
            smtp_port=int(email.get("smtp_port", 587)),
            username=_optional_str(email.get("username")),
            password=_optional_str(os.getenv("SMTP_PASSWORD", email.get("password"))),
            sender=_optional_str(email.get("sender")),
            recipient=_optional_str(email.get("recipient")),
        ),
    )
