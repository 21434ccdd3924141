"""Retry and locking defaults for identity resolution."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_float, optional_env_int

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 0.05
DEFAULT_SQLITE_BUSY_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class ResolutionConfig:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    sqlite_busy_timeout_seconds: float = DEFAULT_SQLITE_BUSY_TIMEOUT_SECONDS


def get_resolution_config() -> ResolutionConfig:
    return ResolutionConfig(
        max_attempts=optional_env_int(
            "CONTACTLINK_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS, minimum=1
        ),
        retry_backoff_seconds=optional_env_float(
            "CONTACTLINK_RETRY_BACKOFF_SECONDS", DEFAULT_RETRY_BACKOFF_SECONDS, minimum=0.0
        ),
        sqlite_busy_timeout_seconds=optional_env_float(
            "CONTACTLINK_SQLITE_BUSY_TIMEOUT",
            DEFAULT_SQLITE_BUSY_TIMEOUT_SECONDS,
            minimum=0.0,
        ),
    )
