"""Runtime settings resolved from the environment."""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Final

DEFAULT_DATABASE_URL: Final[str] = "sqlite:///expenseguard.db"
DEFAULT_LOG_LEVEL: Final[str] = "INFO"

DATABASE_URL_ENV: Final[str] = "EXPENSEGUARD_DATABASE_URL"
LOG_LEVEL_ENV: Final[str] = "EXPENSEGUARD_LOG_LEVEL"
JSON_LOGS_ENV: Final[str] = "EXPENSEGUARD_JSON_LOGS"
SEED_CATEGORIES_ENV: Final[str] = "EXPENSEGUARD_SEED_CATEGORIES"
SQL_ECHO_ENV: Final[str] = "EXPENSEGUARD_SQL_ECHO"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def env_flag(value: str | None, default: bool) -> bool:
    """Interpret an environment flag, falling back to ``default`` when unset or unknown."""

    if value is None:
        return default
    normalised = value.strip().lower()
    if normalised in _TRUTHY:
        return True
    if normalised in _FALSY:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = DEFAULT_LOG_LEVEL
    json_logs: bool = False
    seed_categories: bool = True
    sql_echo: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``environ`` (defaults to :data:`os.environ`)."""

        env = os.environ if environ is None else environ
        database_url = env.get(DATABASE_URL_ENV, "").strip() or DEFAULT_DATABASE_URL
        log_level = env.get(LOG_LEVEL_ENV, "").strip().upper() or DEFAULT_LOG_LEVEL
        return cls(
            database_url=database_url,
            log_level=log_level,
            json_logs=env_flag(env.get(JSON_LOGS_ENV), False),
            seed_categories=env_flag(env.get(SEED_CATEGORIES_ENV), True),
            sql_echo=env_flag(env.get(SQL_ECHO_ENV), False),
        )

    def with_overrides(self, **overrides: object) -> "Settings":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


__all__ = ["DEFAULT_DATABASE_URL", "Settings", "env_flag"]
