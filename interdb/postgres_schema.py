"""
interdb/postgres_schema.py
--------------------------
PostgreSQL schema introspection and ``CREATE TABLE`` generation.

Catalog sources (all filtered by schema *name* and table *name*)::

    information_schema.columns                  base column metadata
    table_constraints ⨝ key_column_usage        PRIMARY KEY / UNIQUE columns
      ⨝ constraint_column_usage                 FOREIGN KEY targets
    information_schema.columns (again)          serial / identity columns
    pg_attribute ⨝ pg_class ⨝ pg_namespace
      ⟕ pg_description                          column comments (best effort)

Design Decisions:
    * No ``'table'::regclass`` casts anywhere. A cast fails outright on
      reserved or mixed-case names, while name-based joins simply match.
    * Auto-increment detection accepts ``nextval(...)`` defaults (serial
      columns), a default mentioning ``identity``, and
      ``is_identity = 'YES'`` (identity columns, which carry no default).
    * The comment lookup runs last and fails soft: on error the aborted
      transaction is rolled back so the connection remains usable, and
      every description falls back to "".
    * The manager accepts either a single connection or a ``psycopg2``
      pool. With a pool, each public call borrows one connection and
      always returns it, including on error paths.
    * Introspection only reads, so every read ends with a rollback. A shared
      connection is never left idle in transaction, holding locks and a
      snapshot between calls.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from psycopg2 import pool as pg_pool

from config import CONFIG
from interdb.database import connect_postgres
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
from interdb.type_mapping import canonical_to_native, normalize_type_name
from logger import get_logger
from models.column import ColumnDescriptor, coerce_bool, coerce_int, coerce_str
from models.connection import DatabaseConfig, Dialect

log = get_logger(__name__)

# Types that already imply a sequence-backed default in PostgreSQL.
_SERIAL_TYPES = frozenset({"SERIAL", "BIGSERIAL", "SMALLSERIAL"})

_COLUMNS_SQL = """
    SELECT
        c.column_name,
        c.data_type,
        c.character_maximum_length AS length,
        c.numeric_precision AS precision,
        c.numeric_scale AS scale,
        c.is_nullable,
        c.column_default AS default_value,
        c.ordinal_position
    FROM information_schema.columns c
    WHERE c.table_schema = %s
      AND c.table_name = %s
    ORDER BY c.ordinal_position
"""

_CONSTRAINT_COLUMNS_SQL = """
    SELECT kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.constraint_schema = kcu.constraint_schema
     AND tc.table_name = kcu.table_name
    WHERE tc.constraint_type = %s
      AND tc.table_schema = %s
      AND tc.table_name = %s
    ORDER BY kcu.ordinal_position
"""

_FOREIGN_KEYS_SQL = """
    SELECT
        kcu.column_name,
        ccu.table_name AS foreign_table,
        ccu.column_name AS foreign_column
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.constraint_schema = kcu.constraint_schema
     AND tc.table_name = kcu.table_name
    JOIN information_schema.constraint_column_usage ccu
      ON ccu.constraint_name = tc.constraint_name
     AND ccu.constraint_schema = tc.constraint_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
      AND tc.table_schema = %s
      AND tc.table_name = %s
"""

_AUTO_INCREMENT_SQL = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = %s
      AND table_name = %s
      AND (column_default LIKE 'nextval%%'
           OR column_default LIKE '%%identity%%'
           OR is_identity = 'YES')
"""

_COMMENTS_SQL = """
    SELECT
        a.attname AS column_name,
        d.description
    FROM pg_catalog.pg_attribute a
    JOIN pg_catalog.pg_class c
      ON c.oid = a.attrelid
    JOIN pg_catalog.pg_namespace n
      ON n.oid = c.relnamespace
    LEFT JOIN pg_catalog.pg_description d
      ON d.objoid = a.attrelid AND d.objsubid = a.attnum
    WHERE n.nspname = %s
      AND c.relname = %s
      AND a.attnum > 0
      AND NOT a.attisdropped
"""

_TABLES_SQL = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""


class PostgresSchemaManager:
    """
    Schema introspection and DDL generation for PostgreSQL.

    Args:
        handle:  An open ``psycopg2`` connection, or a ``psycopg2.pool``
                 connection pool to borrow from per call.
        schema:  Catalog schema to introspect (default from ``PG_SCHEMA``,
                 normally ``public``).

    Example::

        pool = create_postgres_pool(cfg)
        with PostgresSchemaManager(pool) as mgr:
            columns = mgr.extract_schema("orders")
    """

    dialect = Dialect.POSTGRES

    def __init__(self, handle: Any, schema: str | None = None) -> None:
        if isinstance(handle, pg_pool.AbstractConnectionPool):
            self._pool = handle
            self._conn = None
        else:
            self._pool = None
            self._conn = handle
        self.schema = schema or CONFIG.db.pg_schema

    @classmethod
    def from_config(cls, config: DatabaseConfig, schema: str | None = None) -> "PostgresSchemaManager":
        return cls(connect_postgres(config), schema)

    def __enter__(self) -> "PostgresSchemaManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def close(self) -> None:
        """Close the owned connection, or every connection of the owned pool."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            log.debug("PostgreSQL pool closed.")
        elif self._conn is not None:
            self._conn.close()
            self._conn = None
            log.debug("PostgreSQL connection closed.")

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    @contextmanager
    def _connection(self) -> Iterator[Any]:
        """Yield a connection; pooled connections are always returned."""
        if self._pool is None:
            yield self._conn
            return
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    @staticmethod
    def _query(conn: Any, sql: str, params: tuple[Any, ...] = ()) -> list[Row]:
        cursor = conn.cursor()
        try:
            cursor.execute(sql, params)
            return fetch_dicts(cursor)
        finally:
            cursor.close()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_tables(self) -> list[str]:
        """Return base table names in the configured schema, sorted."""
        with self._connection() as conn:
            try:
                rows = self._query(conn, _TABLES_SQL, (self.schema,))
            except Exception:
                log.error("Could not list PostgreSQL tables in '%s'", self.schema, exc_info=True)
                rollback_quietly(conn)
                return []
            rollback_quietly(conn)
        return [row["table_name"] for row in rows]

    def _column_comments(self, conn: Any, table_name: str) -> dict[str, str]:
        try:
            rows = self._query(conn, _COMMENTS_SQL, (self.schema, table_name))
        except Exception as exc:
            log.warning(
                "Column comments unavailable for '%s.%s': %s", self.schema, table_name, exc
            )
            rollback_quietly(conn)
            return {}
        return {
            row["column_name"]: coerce_str(row.get("description")) or ""
            for row in rows
        }

    def extract_schema(self, table_name: str) -> list[ColumnDescriptor]:
        """
        Read the column descriptors of *table_name*, in ordinal order.

        Returns:
            One descriptor per column, or an empty list when the table
            cannot be introspected. A failed comment lookup alone does not
            empty the result.
        """
        params = (self.schema, table_name)
        with self._connection() as conn:
            try:
                columns = self._query(conn, _COLUMNS_SQL, params)
                primary = {
                    row["column_name"]
                    for row in self._query(conn, _CONSTRAINT_COLUMNS_SQL, ("PRIMARY KEY", *params))
                }
                unique = {
                    row["column_name"]
                    for row in self._query(conn, _CONSTRAINT_COLUMNS_SQL, ("UNIQUE", *params))
                }
                foreign_keys: dict[str, tuple[str, str]] = {}
                for row in self._query(conn, _FOREIGN_KEYS_SQL, params):
                    target = (coerce_str(row["foreign_table"]), coerce_str(row["foreign_column"]))
                    if all(target):
                        foreign_keys.setdefault(row["column_name"], target)
                auto_increment = {
                    row["column_name"] for row in self._query(conn, _AUTO_INCREMENT_SQL, params)
                }
            except Exception:
                log.error(
                    "PostgreSQL schema extraction failed for '%s.%s'",
                    self.schema, table_name, exc_info=True,
                )
                rollback_quietly(conn)
                return []

            comments = self._column_comments(conn, table_name) if columns else {}
            # catalog reads open a transaction; end it before the handle is reused
            rollback_quietly(conn)

        try:
            result = [
                self._to_descriptor(
                    table_name, row, primary, unique, foreign_keys, auto_increment, comments
                )
                for row in columns
            ]
        except Exception:
            log.error(
                "Unexpected catalog row shape for '%s.%s'", self.schema, table_name, exc_info=True
            )
            return []

        log.debug(
            "Extracted %d column(s) from PostgreSQL table '%s.%s'",
            len(result), self.schema, table_name,
        )
        return result

    @staticmethod
    def _to_descriptor(
        table_name: str,
        row: Row,
        primary: set[str],
        unique: set[str],
        foreign_keys: dict[str, tuple[str, str]],
        auto_increment: set[str],
        comments: dict[str, str],
    ) -> ColumnDescriptor:
        name = row["column_name"]
        fk = foreign_keys.get(name)
        return ColumnDescriptor(
            table_name=table_name,
            column_name=name,
            data_type=coerce_str(row.get("data_type")) or "",
            length=coerce_int(row.get("length")),
            precision=coerce_int(row.get("precision")),
            scale=coerce_int(row.get("scale")),
            is_nullable=coerce_bool(row.get("is_nullable")),
            is_primary=name in primary,
            is_unique=name in primary or name in unique,
            is_foreign=fk is not None,
            foreign_table=fk[0] if fk else None,
            foreign_column=fk[1] if fk else None,
            default_value=coerce_str(row.get("default_value")),
            auto_increment=name in auto_increment,
            description=comments.get(name, ""),
        )

    # ------------------------------------------------------------------
    # DDL generation
    # ------------------------------------------------------------------

    def create_table(self, columns: Iterable[ColumnDescriptor]) -> bool:
        """
        Create one table per distinct ``table_name`` in *columns*.

        PostgreSQL DDL is transactional: all statements of one call are
        committed together, and a failure rolls the whole batch back.

        Returns:
            True when every table was created, False otherwise.
        """
        groups = self.group_by_table(columns)
        with self._connection() as conn:
            table_name = None
            try:
                for table_name, table_columns in groups.items():
                    sql = self.generate_create_table_sql(table_name, table_columns)
                    log.debug("Executing DDL:\n%s", sql)
                    cursor = conn.cursor()
                    try:
                        cursor.execute(sql)
                    finally:
                        cursor.close()
                    log.info("Created PostgreSQL table '%s'", table_name)
                conn.commit()
                return True
            except Exception:
                log.error("PostgreSQL table creation failed at '%s'", table_name, exc_info=True)
                rollback_quietly(conn)
                return False

    @staticmethod
    def group_by_table(columns: Iterable[ColumnDescriptor]) -> dict[str, list[ColumnDescriptor]]:
        return group_by_table(columns)

    def generate_create_table_sql(self, table_name: str, columns: list[ColumnDescriptor]) -> str:
        """Build the ``CREATE TABLE`` statement for one table's columns."""
        definitions = [self.generate_column_sql(col) for col in columns]
        keys = primary_key_columns(columns)
        if keys:
            definitions.append(f"PRIMARY KEY ({', '.join(keys)})")
        definitions.extend(foreign_key_clause(col) for col in columns if col.has_foreign_target)
        return render_create_table(table_name, definitions)

    def generate_column_sql(self, column: ColumnDescriptor) -> str:
        """
        Render one column definition.

        Identity columns never carry a DEFAULT, and serial types get no
        identity clause since the type already supplies the sequence. Key
        and identity columns are always NOT NULL.
        """
        native_type = self.get_data_type_sql(column)
        identity = column.auto_increment and normalize_type_name(native_type) not in _SERIAL_TYPES
        nullable = column.is_nullable and not (column.is_primary or identity)
        return join_parts(
            [
                column.column_name,
                native_type,
                "NULL" if nullable else "NOT NULL",
                "GENERATED ALWAYS AS IDENTITY" if identity else None,
                (
                    f"DEFAULT {column.default_value}"
                    if column.default_value and not column.auto_increment
                    else None
                ),
                "UNIQUE" if column.is_unique and not column.is_primary else None,
            ]
        )

    def get_data_type_sql(self, column: ColumnDescriptor) -> str:
        return canonical_to_native(
            self.dialect, column.data_type, column.length, column.precision, column.scale
        )
