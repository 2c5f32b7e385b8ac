"""Runtime configuration for the exhibits dashboard backend."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigurationError

# purpose: build one explicit settings object at startup and hand it to every component
# status: active

ENV_PREFIX = "EXHIBITS_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _as_int(name: str, value: str | None, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} must be an integer") from exc


@dataclass(frozen=True)
class Settings:
    """Immutable settings shared by the app factory, services and CLI."""

    database_url: str = "sqlite:///./exhibits.db"
    storage_root: Path = Path("./storage")
    secret_key: str = "change-me"
    token_algorithm: str = "HS256"
    token_ttl_minutes: int = 60
    elasticsearch_url: str | None = None
    index_name: str = "exhibits"
    index_required_for_publish: bool = True
    lock_timeout_minutes: int = 20
    storage_timeout_seconds: int = 10
    log_level: str = "INFO"
    sentry_dsn: str | None = None
    cors_origins: tuple[str, ...] = field(
        default=("http://localhost:3000", "http://127.0.0.1:3000")
    )
    rate_limit: str = "100/minute"
    testing: bool = False

    def __post_init__(self) -> None:
        if self.lock_timeout_minutes <= 0:
            raise ConfigurationError("lock_timeout_minutes must be positive")
        if self.storage_timeout_seconds <= 0:
            raise ConfigurationError("storage_timeout_seconds must be positive")
        if self.token_ttl_minutes <= 0:
            raise ConfigurationError("token_ttl_minutes must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        def read(name: str) -> str | None:
            return env.get(f"{ENV_PREFIX}{name.upper()}")

        defaults = cls()
        origins = read("cors_origins")
        return cls(
            database_url=read("database_url") or defaults.database_url,
            storage_root=Path(read("storage_root") or defaults.storage_root),
            secret_key=read("secret_key") or defaults.secret_key,
            token_algorithm=read("token_algorithm") or defaults.token_algorithm,
            token_ttl_minutes=_as_int(
                "token_ttl_minutes", read("token_ttl_minutes"), defaults.token_ttl_minutes
            ),
            elasticsearch_url=read("elasticsearch_url") or None,
            index_name=read("index_name") or defaults.index_name,
            index_required_for_publish=_as_bool(
                read("index_required_for_publish"), defaults.index_required_for_publish
            ),
            lock_timeout_minutes=_as_int(
                "lock_timeout_minutes", read("lock_timeout_minutes"), defaults.lock_timeout_minutes
            ),
            storage_timeout_seconds=_as_int(
                "storage_timeout_seconds",
                read("storage_timeout_seconds"),
                defaults.storage_timeout_seconds,
            ),
            log_level=(read("log_level") or defaults.log_level).upper(),
            sentry_dsn=read("sentry_dsn") or None,
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip())
            if origins
            else defaults.cors_origins,
            rate_limit=read("rate_limit") or defaults.rate_limit,
            testing=_as_bool(env.get("TESTING"), False),
        )

    def with_overrides(self, **overrides: Any) -> "Settings":
        return replace(self, **overrides)
