"""
config.py
---------
Centralised configuration for the interdb schema bridge.

Loads settings from environment variables (with .env file support via
python-dotenv). Settings are exposed as frozen dataclasses so configuration
is immutable at runtime.

Design Decision:
    Class-level defaults mean introspection and DDL generation work against
    a local server without any .env file, while deployments can override
    hosts, ports and the PostgreSQL catalog schema through the environment.
    Credentials are never read here; callers pass them to the connection
    factories explicitly.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection defaults shared by the server-based dialects."""
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", "localhost"))
    mysql_port: int = field(default_factory=lambda: int(os.getenv("MYSQL_PORT", "3306")))
    pg_port: int = field(default_factory=lambda: int(os.getenv("PG_PORT", "5432")))
    connect_timeout: int = field(
        default_factory=lambda: int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    )
    mysql_charset: str = field(
        default_factory=lambda: os.getenv("MYSQL_CHARSET", "utf8mb4")
    )
    pg_schema: str = field(default_factory=lambda: os.getenv("PG_SCHEMA", "public"))


@dataclass(frozen=True)
class LoggingSettings:
    """Log level and optional log file destination."""
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    db: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    app_name: str = "interdb"
    app_version: str = "0.3.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Example::

        cfg = load_config()
        print(cfg.db.pg_schema)   # "public"
        print(cfg.db.mysql_port)  # 3306
    """
    return AppConfig()


# Module-level singleton used throughout the application
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.logging.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level
