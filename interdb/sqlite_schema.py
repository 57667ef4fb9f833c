"""
interdb/sqlite_schema.py
------------------------
SQLite schema introspection and ``CREATE TABLE`` generation.

Catalog sources::

    PRAGMA table_info(t)        name / type / notnull / dflt_value / pk rank
    PRAGMA foreign_key_list(t)  from → (table, to)
    PRAGMA index_list(t)        indexes, with a unique flag
    PRAGMA index_info(idx)      columns covered by one index

Design Decisions:
    * Any primary key column declared ``INTEGER`` is reported with
      ``auto_increment``, composite keys included. Only a lone
      ``INTEGER PRIMARY KEY`` is a real ROWID alias, and the generator
      emits no ``AUTOINCREMENT`` keyword, so the flag only matters when the
      descriptors are replayed into MySQL or PostgreSQL.
    * A single primary key column always gets an inline ``PRIMARY KEY``;
      only composite keys use a table-level constraint.
    * Column comments are not stored by SQLite, so ``description`` is "".
"""
from __future__ import annotations

import sqlite3
from typing import Any, Iterable

from interdb.database import connect_sqlite
from interdb.schema_utils import (
    Row,
    fetch_dicts,
    foreign_key_clause,
    group_by_table,
    join_parts,
    primary_key_columns,
    render_create_table,
    rollback_quietly,
)
from interdb.type_mapping import canonical_to_native
from logger import get_logger
from models.column import ColumnDescriptor, coerce_bool, coerce_int, coerce_str
from models.connection import Dialect, SqliteConfig

log = get_logger(__name__)


def quote_identifier(name: str) -> str:
    """Double-quote *name* for use inside a PRAGMA argument."""
    return '"' + name.replace('"', '""') + '"'


class SqliteSchemaManager:
    """
    Schema introspection and DDL generation for one SQLite connection.

    Example::

        with SqliteSchemaManager.from_config(SqliteConfig(filename="app.db")) as mgr:
            columns = mgr.extract_schema("users")
            mgr.create_table([c.renamed("users_copy") for c in columns])
    """

    dialect = Dialect.SQLITE

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    @classmethod
    def from_config(cls, config: SqliteConfig) -> "SqliteSchemaManager":
        return cls(connect_sqlite(config))

    def __enter__(self) -> "SqliteSchemaManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            log.debug("SQLite connection closed.")

    # ------------------------------------------------------------------
    # Catalog access
    # ------------------------------------------------------------------

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[Row]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, params)
            return fetch_dicts(cursor)
        finally:
            cursor.close()

    def list_tables(self) -> list[str]:
        """Return user table names, sorted. Empty list on failure."""
        try:
            rows = self._query(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
        except Exception:
            log.error("Could not list SQLite tables", exc_info=True)
            return []
        return [row["name"] for row in rows]

    def _unique_columns(self, table_name: str) -> set[str]:
        unique: set[str] = set()
        for index in self._query(f"PRAGMA index_list({quote_identifier(table_name)})"):
            if not coerce_bool(index.get("unique")):
                continue
            for info in self._query(f"PRAGMA index_info({quote_identifier(index['name'])})"):
                if info.get("name"):
                    unique.add(info["name"])
        return unique

    def _foreign_keys(self, table_name: str) -> dict[str, tuple[str, str]]:
        """Map column → (foreign table, foreign column) for *table_name*."""
        targets: dict[str, tuple[str, str]] = {}
        for fk in self._query(f"PRAGMA foreign_key_list({quote_identifier(table_name)})"):
            foreign_table = coerce_str(fk.get("table"))
            foreign_column = coerce_str(fk.get("to"))
            if foreign_table and not foreign_column:
                # REFERENCES parent without a column list targets the parent's key
                parent_keys = [
                    row["name"]
                    for row in self._query(f"PRAGMA table_info({quote_identifier(foreign_table)})")
                    if coerce_int(row.get("pk"))
                ]
                foreign_column = parent_keys[0] if len(parent_keys) == 1 else None
            if foreign_table and foreign_column:
                targets.setdefault(fk["from"], (foreign_table, foreign_column))
            else:
                log.warning(
                    "Skipping unresolved foreign key on %s.%s", table_name, fk.get("from")
                )
        return targets

    def extract_schema(self, table_name: str) -> list[ColumnDescriptor]:
        """
        Read the column descriptors of *table_name*, in column order.

        Returns:
            One descriptor per column, or an empty list when the table
            cannot be introspected (unknown table or catalog error).
        """
        try:
            table_info = self._query(f"PRAGMA table_info({quote_identifier(table_name)})")
            foreign_keys = self._foreign_keys(table_name)
            unique_columns = self._unique_columns(table_name)
            result = self._to_descriptors(table_name, table_info, foreign_keys, unique_columns)
        except Exception:
            log.error("SQLite schema extraction failed for '%s'", table_name, exc_info=True)
            return []

        log.debug("Extracted %d column(s) from SQLite table '%s'", len(result), table_name)
        return result

    @staticmethod
    def _to_descriptors(
        table_name: str,
        table_info: list[Row],
        foreign_keys: dict[str, tuple[str, str]],
        unique_columns: set[str],
    ) -> list[ColumnDescriptor]:
        result: list[ColumnDescriptor] = []
        for row in table_info:
            name = row["name"]
            declared_type = coerce_str(row.get("type")) or ""
            is_primary = (coerce_int(row.get("pk")) or 0) > 0
            fk = foreign_keys.get(name)
            result.append(
                ColumnDescriptor(
                    table_name=table_name,
                    column_name=name,
                    data_type=declared_type,
                    is_nullable=not coerce_bool(row.get("notnull")),
                    is_primary=is_primary,
                    is_unique=is_primary or name in unique_columns,
                    is_foreign=fk is not None,
                    foreign_table=fk[0] if fk else None,
                    foreign_column=fk[1] if fk else None,
                    default_value=coerce_str(row.get("dflt_value")),
                    auto_increment=is_primary and declared_type.upper() == "INTEGER",
                    description="",
                )
            )
        return result

    # ------------------------------------------------------------------
    # DDL generation
    # ------------------------------------------------------------------

    def create_table(self, columns: Iterable[ColumnDescriptor]) -> bool:
        """
        Create one table per distinct ``table_name`` in *columns*.

        Tables are created in first-seen order. The first failing statement
        stops the batch; tables created before it are left in place.

        Returns:
            True when every table was created, False otherwise.
        """
        table_name = None
        try:
            for table_name, table_columns in self.group_by_table(columns).items():
                sql = self.generate_create_table_sql(table_name, table_columns)
                log.debug("Executing DDL:\n%s", sql)
                cursor = self._conn.cursor()
                try:
                    cursor.execute(sql)
                finally:
                    cursor.close()
                log.info("Created SQLite table '%s'", table_name)
            self._conn.commit()
            return True
        except Exception:
            log.error("SQLite table creation failed at '%s'", table_name, exc_info=True)
            rollback_quietly(self._conn)
            return False

    @staticmethod
    def group_by_table(columns: Iterable[ColumnDescriptor]) -> dict[str, list[ColumnDescriptor]]:
        return group_by_table(columns)

    def generate_create_table_sql(self, table_name: str, columns: list[ColumnDescriptor]) -> str:
        """Build the ``CREATE TABLE`` statement for one table's columns."""
        keys = primary_key_columns(columns)
        definitions = [
            self.generate_column_sql(col, inline_primary_key=len(keys) == 1) for col in columns
        ]
        if len(keys) > 1:
            definitions.append(f"PRIMARY KEY ({', '.join(keys)})")
        definitions.extend(foreign_key_clause(col) for col in columns if col.has_foreign_target)
        return render_create_table(table_name, definitions)

    def generate_column_sql(
        self, column: ColumnDescriptor, inline_primary_key: bool = True
    ) -> str:
        """
        Render one column definition.

        ``inline_primary_key`` is False for members of a composite key, which
        are declared by the table-level constraint instead.
        """
        return join_parts(
            [
                column.column_name,
                self.get_data_type_sql(column),
                "PRIMARY KEY" if column.is_primary and inline_primary_key else None,
                None if column.is_nullable else "NOT NULL",
                "UNIQUE" if column.is_unique and not column.is_primary else None,
                f"DEFAULT {column.default_value}" if column.default_value else None,
            ]
        )

    def get_data_type_sql(self, column: ColumnDescriptor) -> str:
        return canonical_to_native(
            self.dialect, column.data_type, column.length, column.precision, column.scale
        )
