"""Client configuration for pywaypoint."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pywaypoint._constants import (
    DEFAULT_LOCATIONS_PATH,
    DEFAULT_MAX_CONCURRENT_FETCHES,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_WRITE_INTERVAL,
)
from pywaypoint.exceptions import WaypointConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, raw: str, convert: type[float] | type[int]) -> float | int:
    try:
        return convert(raw)
    except ValueError as exc:
        raise WaypointConfigError(f"{env_key} must be a number, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class WaypointConfig:
    """Presence synchronization configuration.

    Parameters
    ----------
    database_url : str
        Root URL of the realtime database holding location records,
        e.g. ``"https://example-default-rtdb.firebaseio.com"``.
    auth_token : str or None
        ID token or database secret sent as the ``auth`` query parameter.
    locations_path : str
        Node under which each user's record is stored, keyed by user ID.
    write_interval : float
        Minimum seconds between two writes of the principal's own record.
    refresh_interval : float
        Seconds between two refreshes of the tracked peer set.
    request_timeout : float
        Total timeout of a single store request, in seconds.
    max_concurrent_fetches : int
        Upper bound on peer fetches in flight within one refresh batch.
    preferences_path : str or None
        JSON file persisting the sharing preference. ``None`` keeps the
        preference in memory only.
    log_coordinates : bool
        Emit full-precision coordinates in debug logs instead of coarsened ones.
    """

    database_url: str
    auth_token: str | None = None
    locations_path: str = DEFAULT_LOCATIONS_PATH
    write_interval: float = DEFAULT_WRITE_INTERVAL
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES
    preferences_path: str | None = None
    log_coordinates: bool = False

    def __post_init__(self) -> None:
        if not self.database_url.strip():
            raise WaypointConfigError("database_url must be non-empty")
        if self.write_interval < 0 or self.refresh_interval <= 0:
            raise WaypointConfigError("write_interval must be >= 0 and refresh_interval must be > 0")
        if self.request_timeout <= 0:
            raise WaypointConfigError("request_timeout must be > 0")
        if self.max_concurrent_fetches < 1:
            raise WaypointConfigError("max_concurrent_fetches must be >= 1")

    @property
    def base_url(self) -> str:
        """Database URL without a trailing slash."""
        return self.database_url.rstrip("/")

    @classmethod
    def from_env(cls, **overrides: Any) -> WaypointConfig:
        """Create configuration from environment variables.

        Reads ``WAYPOINT_DATABASE_URL`` and optional ``WAYPOINT_*``
        variables. Explicit keyword arguments override environment values.

        Raises
        ------
        WaypointConfigError
            If the database URL is missing or a numeric variable is invalid.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "WAYPOINT_DATABASE_URL": "database_url",
            "WAYPOINT_AUTH_TOKEN": "auth_token",
            "WAYPOINT_LOCATIONS_PATH": "locations_path",
            "WAYPOINT_PREFERENCES_PATH": "preferences_path",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type[float] | type[int]]] = {
            "WAYPOINT_WRITE_INTERVAL": ("write_interval", float),
            "WAYPOINT_REFRESH_INTERVAL": ("refresh_interval", float),
            "WAYPOINT_REQUEST_TIMEOUT": ("request_timeout", float),
            "WAYPOINT_MAX_CONCURRENT_FETCHES": ("max_concurrent_fetches", int),
        }
        for env_key, (field_name, convert) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, convert)

        if "log_coordinates" not in overrides:
            config_kwargs["log_coordinates"] = _env_bool(env.get("WAYPOINT_LOG_COORDINATES"), False)

        config_kwargs.update(overrides)

        if "database_url" not in config_kwargs:
            raise WaypointConfigError("WAYPOINT_DATABASE_URL is not set")

        return cls(**config_kwargs)
