"""
Connection settings models for the three supported dialects.
These models are consumed by the connection factories and the
``from_config`` constructors of the schema managers.

Server fields left as None (host, port, connect_timeout) are filled from
the environment-driven ``CONFIG.db`` defaults when a connection is opened,
so one ``DatabaseConfig`` shape serves both MySQL and PostgreSQL.
"""
from enum import Enum

from pydantic import BaseModel, Field


class Dialect(str, Enum):
    """Supported SQL backends."""
    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"


class DatabaseConfig(BaseModel):
    """Server database connection configuration (MySQL / PostgreSQL)."""
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    user: str
    password: str
    database: str
    connect_timeout: int | None = Field(default=None, ge=1)


class SqliteConfig(BaseModel):
    """SQLite database file configuration."""
    filename: str = ":memory:"
