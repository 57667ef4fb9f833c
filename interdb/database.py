"""
interdb/database.py
-------------------
Connection factories for the three supported backends.

Design Decisions:
    * The schema managers never open connections themselves when given one;
      these factories back their ``from_config`` constructors only.
    * Server connections are retried with linear back-off on transient
      failures (configurable via ``max_retries`` / ``retry_delay``).
    * Timeouts are delegated to the drivers through ``connect_timeout``;
      no operation in this package adds its own.
    * Host, port and timeout left unset on a ``DatabaseConfig`` come from
      ``CONFIG.db``, so each dialect gets its own default port.
"""
from __future__ import annotations

import sqlite3
import time
from typing import Any, Callable

import mysql.connector
import psycopg2
from psycopg2 import pool as pg_pool

from config import CONFIG
from logger import get_logger
from models.connection import DatabaseConfig, SqliteConfig

log = get_logger(__name__)


class DatabaseError(Exception):
    """Raised when a backend connection cannot be established."""


def _with_retries(
    label: str,
    open_fn: Callable[[], Any],
    errors: tuple[type[BaseException], ...],
    max_retries: int,
    retry_delay: float,
) -> Any:
    for attempt in range(1, max_retries + 1):
        try:
            log.info("Connecting to %s (attempt %d/%d)", label, attempt, max_retries)
            conn = open_fn()
            log.info("Connected to %s.", label)
            return conn
        except errors as exc:
            log.warning("Connection attempt %d to %s failed: %s", attempt, label, exc)
            if attempt < max_retries:
                time.sleep(retry_delay * attempt)
    raise DatabaseError(f"Could not connect to {label} after {max_retries} attempts.")


def connect_sqlite(config: SqliteConfig) -> sqlite3.Connection:
    """
    Open a SQLite database file (``":memory:"`` for a private in-memory DB).

    Raises:
        DatabaseError: If the file cannot be opened.
    """
    try:
        conn = sqlite3.connect(config.filename)
    except sqlite3.Error as exc:
        raise DatabaseError(f"Could not open SQLite database '{config.filename}': {exc}") from exc
    log.info("Opened SQLite database: %s", config.filename)
    return conn


def server_connect_kwargs(config: DatabaseConfig, default_port: int) -> dict[str, Any]:
    """
    Driver keywords for a server connection.

    Fields left unset on *config* fall back to ``CONFIG.db``: ``DB_HOST``,
    ``DB_CONNECT_TIMEOUT``, and *default_port* (``MYSQL_PORT`` or
    ``PG_PORT`` depending on the caller).
    """
    return {
        "host": config.host or CONFIG.db.host,
        "port": config.port or default_port,
        "user": config.user,
        "password": config.password,
        "connect_timeout": config.connect_timeout or CONFIG.db.connect_timeout,
    }


def connect_mysql(
    config: DatabaseConfig,
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> Any:
    """
    Open a MySQL connection with ``mysql.connector``.

    Raises:
        DatabaseError: If connection fails after all retries.
    """
    params = server_connect_kwargs(config, CONFIG.db.mysql_port)
    return _with_retries(
        f"MySQL at {params['host']}:{params['port']}/{config.database}",
        lambda: mysql.connector.connect(
            database=config.database,
            charset=CONFIG.db.mysql_charset,
            **params,
        ),
        (mysql.connector.Error,),
        max_retries,
        retry_delay,
    )


def connect_postgres(
    config: DatabaseConfig,
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> Any:
    """
    Open a PostgreSQL connection with ``psycopg2``.

    Raises:
        DatabaseError: If connection fails after all retries.
    """
    params = server_connect_kwargs(config, CONFIG.db.pg_port)
    return _with_retries(
        f"PostgreSQL at {params['host']}:{params['port']}/{config.database}",
        lambda: psycopg2.connect(dbname=config.database, **params),
        (psycopg2.OperationalError,),
        max_retries,
        retry_delay,
    )


def create_postgres_pool(
    config: DatabaseConfig,
    minconn: int = 1,
    maxconn: int = 4,
) -> pg_pool.SimpleConnectionPool:
    """
    Build a ``psycopg2`` connection pool for a :class:`PostgresSchemaManager`.

    Raises:
        DatabaseError: If the pool's initial connections cannot be opened.
    """
    params = server_connect_kwargs(config, CONFIG.db.pg_port)
    try:
        return pg_pool.SimpleConnectionPool(
            minconn, maxconn, dbname=config.database, **params
        )
    except psycopg2.Error as exc:
        raise DatabaseError(
            f"Could not create PostgreSQL pool for {params['host']}:{params['port']}: {exc}"
        ) from exc
