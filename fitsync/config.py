from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .errors import ConfigError

DEFAULT_MAX_RETRIES = 3
DEFAULT_SYNC_INTERVAL_S = 15 * 60.0


@dataclass
class SyncConfig:
    max_retries: int = DEFAULT_MAX_RETRIES
    sync_interval_s: float = DEFAULT_SYNC_INTERVAL_S

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.max_retries <= 0:
            raise ConfigError(
                "max_retries must be > 0; a zero budget would park every record on enqueue"
            )
        if self.sync_interval_s <= 0:
            raise ConfigError("sync_interval_s must be > 0")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SyncConfig":
        """
        Build a config from FITSYNC_MAX_RETRIES / FITSYNC_SYNC_INTERVAL_S.

        Unset or empty variables fall back to the defaults.
        """
        env = os.environ if environ is None else environ
        return cls(
            max_retries=_env_int(env, "FITSYNC_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            sync_interval_s=_env_float(env, "FITSYNC_SYNC_INTERVAL_S", DEFAULT_SYNC_INTERVAL_S),
        )


@dataclass
class RemoteConfig:
    base_url: str
    api_key: str
    timeout_s: float = 10.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if not self.api_key:
            raise ConfigError("api_key cannot be empty")
        if self.timeout_s <= 0:
            raise ConfigError("timeout_s must be > 0")
        self.base_url = self.base_url.rstrip("/")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RemoteConfig":
        env = os.environ if environ is None else environ
        try:
            base_url = env["FITSYNC_REMOTE_URL"]
            api_key = env["FITSYNC_REMOTE_API_KEY"]
        except KeyError as exc:
            raise ConfigError(f"missing environment variable {exc.args[0]}") from exc
        return cls(
            base_url=base_url,
            api_key=api_key,
            timeout_s=_env_float(env, "FITSYNC_REMOTE_TIMEOUT_S", 10.0),
        )


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
