"""Configuration for feed_rules.

Settings come from FEED_RULES_* environment variables so the same package can
be driven from the CLI, a test suite or a host service without config files.

Environment Variables:
    FEED_RULES_DB_PATH: SQLite database file (default ~/.feed_rules/feed_rules.db)
    FEED_RULES_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    FEED_RULES_CASE_SENSITIVE: Default case handling for string operators
    FEED_RULES_TOP_RULES_LIMIT: Number of rules reported by top-rule statistics
    FEED_RULES_REGEX_TIMEOUT: Seconds a single regex match may run
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_db_path() -> Path:
    return Path.home() / ".feed_rules" / "feed_rules.db"


class EngineConfig(BaseSettings):
    """Runtime settings for the rule engine and its storage."""

    model_config = SettingsConfigDict(
        env_prefix="FEED_RULES_",
        extra="ignore",
        case_sensitive=False,
    )

    name: str = "feed_rules"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level for feed_rules loggers",
    )
    db_path: Path = Field(
        default_factory=_default_db_path,
        description="SQLite database file",
    )
    case_sensitive: bool = Field(
        default=True,
        description="Whether string operators respect case unless a condition says otherwise",
    )
    top_rules_limit: int = Field(
        default=10,
        gt=0,
        description="Number of rules returned by top-rule statistics",
    )
    regex_timeout: float = Field(
        default=0.1,
        gt=0,
        description="Seconds a single regex match may run before it counts as no match",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        if isinstance(v, str):
            return v.upper()
        return v


def load_config() -> EngineConfig:
    """Build a fresh configuration from the environment.

    Raises:
        pydantic.ValidationError: If a FEED_RULES_* variable is malformed
    """
    return EngineConfig()


@lru_cache(maxsize=1)
def get_config() -> EngineConfig:
    """Get the process-wide configuration, loading it on first use."""
    return load_config()


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    get_config.cache_clear()
