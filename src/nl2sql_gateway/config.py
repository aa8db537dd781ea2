"""
Configuration
=============

Environment-driven settings for the gateway.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


def _parse_api_keys(raw: str) -> dict[str, str]:
    """Parse ``key:actor,key2:actor2`` into a key -> actor mapping."""
    keys = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        key, _, actor = item.partition(":")
        keys[key.strip()] = actor.strip() or key.strip()
    return keys


@dataclass
class Settings:
    """Runtime settings for the pipeline, diagnostics and HTTP surface."""

    environment: str = "development"
    default_max_rows: int = 1000
    max_schema_tables: int = 50
    max_schema_columns: int = 50
    enable_failover: bool = False
    config_cache_ttl: int = 30
    diagnostic_workers: int = 4
    seed_file: Optional[str] = None
    auth_enabled: bool = False
    api_keys: dict[str, str] = field(default_factory=dict)
    rate_limit: int = 100

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            environment=os.getenv("ENVIRONMENT", "development"),
            default_max_rows=_env_int("NL2SQL_DEFAULT_MAX_ROWS", 1000),
            max_schema_tables=_env_int("NL2SQL_MAX_SCHEMA_TABLES", 50),
            max_schema_columns=_env_int("NL2SQL_MAX_SCHEMA_COLUMNS", 50),
            enable_failover=_env_bool("NL2SQL_ENABLE_FAILOVER", False),
            config_cache_ttl=_env_int("NL2SQL_CONFIG_CACHE_TTL", 30),
            diagnostic_workers=_env_int("NL2SQL_DIAGNOSTIC_WORKERS", 4),
            seed_file=os.getenv("NL2SQL_SEED_FILE") or None,
            auth_enabled=_env_bool("NL2SQL_AUTH_ENABLED", False),
            api_keys=_parse_api_keys(os.getenv("NL2SQL_API_KEYS", "")),
            rate_limit=_env_int("NL2SQL_RATE_LIMIT", 100),
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
