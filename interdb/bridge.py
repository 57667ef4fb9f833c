"""
interdb/bridge.py
-----------------
Dialect dispatch and the cross-database table copy.

Design Decision:
    The three managers share no base class. Dispatch is a plain mapping
    from :class:`Dialect` to constructor, and ``copy_table_schema`` only
    relies on the ``SchemaManager`` protocol (``extract_schema`` +
    ``create_table``), so any pairing of source and target works.
"""
from __future__ import annotations

from typing import Any, Callable

from interdb.mysql_schema import MySqlSchemaManager
from interdb.postgres_schema import PostgresSchemaManager
from interdb.schema_utils import SchemaManager
from interdb.sqlite_schema import SqliteSchemaManager
from logger import get_logger
from models.column import rename_table
from models.connection import Dialect

log = get_logger(__name__)

_FACTORIES: dict[Dialect, Callable[..., SchemaManager]] = {
    Dialect.SQLITE: SqliteSchemaManager,
    Dialect.MYSQL: MySqlSchemaManager,
    Dialect.POSTGRES: PostgresSchemaManager,
}


def schema_manager_for(dialect: Dialect | str, handle: Any, **options: Any) -> SchemaManager:
    """
    Wrap an open connection (or PostgreSQL pool) in the manager for *dialect*.

    Args:
        dialect:  Target :class:`Dialect` or its string value.
        handle:   Live connection; a ``psycopg2`` pool is also accepted for
                  PostgreSQL.
        options:  ``database=`` (required for MySQL), ``schema=`` (PostgreSQL).

    Raises:
        ValueError: If *dialect* is not supported.

    Example::

        mgr = schema_manager_for("mysql", conn, database="shop")
    """
    return _FACTORIES[Dialect(dialect)](handle, **options)


def copy_table_schema(
    source: SchemaManager,
    target: SchemaManager,
    table_name: str,
    target_table: str | None = None,
) -> bool:
    """
    Recreate the shape of *table_name* from *source* on *target*.

    Only the table definition is copied, never rows. The table is created
    as *target_table* when given.

    Returns:
        True when the table was created on *target*; False when the source
        could not be introspected or creation failed.
    """
    columns = source.extract_schema(table_name)
    if not columns:
        log.warning("Nothing to copy: no columns extracted for '%s'", table_name)
        return False

    if target_table and target_table != table_name:
        columns = rename_table(columns, target_table)

    created = target.create_table(columns)
    if created:
        log.info(
            "Copied schema of '%s' to '%s' (%d column(s))",
            table_name, target_table or table_name, len(columns),
        )
    return created
