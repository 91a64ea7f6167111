"""Application settings.

Values come from the environment (optionally a ``.env`` file loaded with
python-dotenv). Every key is prefixed with ``MEETPOINT_``.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "MEETPOINT_"

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = _env(name)
    return float(value) if value not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value in (None, ""):
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: list[str]) -> list[str]:
    value = _env(name)
    if value in (None, ""):
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration for the service container."""

    redis_url: Optional[str] = None

    nominatim_url: str = "https://nominatim.openstreetmap.org"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    provider_timeout: float = 30.0
    user_agent: str = "Meetpoint/1.0 (contact@meetpoint.app)"

    cache_ttl_seconds: int = 1800
    cache_max_entries: int = 50
    cache_sweep_interval_seconds: int = 600

    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_backoff_factor: float = 2.0
    retry_max_delay: float = 30.0

    history_max_items: int = 20
    default_radius_meters: int = 5000
    resolve_midpoint_address: bool = True
    fetch_venue_details: bool = False

    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from ``MEETPOINT_*`` environment variables."""
        if dotenv:
            load_dotenv()
        defaults = cls()
        return cls(
            redis_url=_env("REDIS_URL") or None,
            nominatim_url=_env("NOMINATIM_URL", defaults.nominatim_url),
            overpass_url=_env("OVERPASS_URL", defaults.overpass_url),
            provider_timeout=_env_float("PROVIDER_TIMEOUT", defaults.provider_timeout),
            user_agent=_env("USER_AGENT", defaults.user_agent),
            cache_ttl_seconds=_env_int("CACHE_TTL_SECONDS", defaults.cache_ttl_seconds),
            cache_max_entries=_env_int("CACHE_MAX_ENTRIES", defaults.cache_max_entries),
            cache_sweep_interval_seconds=_env_int(
                "CACHE_SWEEP_INTERVAL_SECONDS", defaults.cache_sweep_interval_seconds
            ),
            retry_max_attempts=_env_int("RETRY_MAX_ATTEMPTS", defaults.retry_max_attempts),
            retry_base_delay=_env_float("RETRY_BASE_DELAY", defaults.retry_base_delay),
            retry_backoff_factor=_env_float(
                "RETRY_BACKOFF_FACTOR", defaults.retry_backoff_factor
            ),
            retry_max_delay=_env_float("RETRY_MAX_DELAY", defaults.retry_max_delay),
            history_max_items=_env_int("HISTORY_MAX_ITEMS", defaults.history_max_items),
            default_radius_meters=_env_int(
                "DEFAULT_RADIUS_METERS", defaults.default_radius_meters
            ),
            resolve_midpoint_address=_env_bool(
                "RESOLVE_MIDPOINT_ADDRESS", defaults.resolve_midpoint_address
            ),
            fetch_venue_details=_env_bool("FETCH_VENUE_DETAILS", defaults.fetch_venue_details),
            cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
            log_level=_env("LOG_LEVEL", defaults.log_level).upper(),
        )
