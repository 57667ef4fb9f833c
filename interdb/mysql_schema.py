"""
interdb/mysql_schema.py
-----------------------
MySQL schema introspection and ``CREATE TABLE`` generation.

Catalog sources:
    * ``INFORMATION_SCHEMA.COLUMNS``: one row per column, filtered by the
      configured database (``TABLE_SCHEMA``) and table name.
    * ``INFORMATION_SCHEMA.KEY_COLUMN_USAGE``: rows with a non-null
      ``REFERENCED_TABLE_NAME`` give each foreign key column its target.

Design Decisions:
    * ``COLUMN_KEY`` drives both key flags: ``PRI`` marks primary (and
      therefore unique) columns, ``UNI`` marks unique ones. ``MUL`` is not
      treated as a foreign key; only ``KEY_COLUMN_USAGE`` decides that.
    * Queries are parameterised (``%s``); the database and table names are
      never interpolated into SQL text during introspection.
    * Column comments round-trip through ``COMMENT '...'``.
"""
from __future__ import annotations

from typing import Any, Iterable

from interdb.database import connect_mysql
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
from models.column import ColumnDescriptor, coerce_int, coerce_str
from models.connection import DatabaseConfig, Dialect

log = get_logger(__name__)

_COLUMNS_SQL = """
    SELECT
        COLUMN_NAME AS column_name,
        DATA_TYPE AS data_type,
        CHARACTER_MAXIMUM_LENGTH AS length,
        NUMERIC_PRECISION AS `precision`,
        NUMERIC_SCALE AS `scale`,
        IS_NULLABLE AS is_nullable,
        COLUMN_KEY AS column_key,
        COLUMN_DEFAULT AS default_value,
        EXTRA AS extra,
        COLUMN_COMMENT AS description
    FROM INFORMATION_SCHEMA.COLUMNS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
    ORDER BY ORDINAL_POSITION
"""

_FOREIGN_KEYS_SQL = """
    SELECT
        COLUMN_NAME AS column_name,
        REFERENCED_TABLE_NAME AS foreign_table,
        REFERENCED_COLUMN_NAME AS foreign_column
    FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
      AND REFERENCED_TABLE_NAME IS NOT NULL
"""

_TABLES_SQL = """
    SELECT TABLE_NAME AS table_name
    FROM INFORMATION_SCHEMA.TABLES
    WHERE TABLE_SCHEMA = %s AND TABLE_TYPE = 'BASE TABLE'
    ORDER BY TABLE_NAME
"""


def escape_comment(text: str) -> str:
    """
    Escape *text* for a single-quoted MySQL string literal.

    Example::

        escape_comment("it's")  →  "it''s"
    """
    return text.replace("\\", "\\\\").replace("'", "''")


class MySqlSchemaManager:
    """
    Schema introspection and DDL generation for one MySQL connection.

    Args:
        connection:  Open ``mysql.connector`` (or any DB-API, ``%s``-style)
                     connection.
        database:    Schema name used to filter ``INFORMATION_SCHEMA``.
    """

    dialect = Dialect.MYSQL

    def __init__(self, connection: Any, database: str) -> None:
        self._conn = connection
        self.database = database

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "MySqlSchemaManager":
        return cls(connect_mysql(config), config.database)

    def __enter__(self) -> "MySqlSchemaManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            log.debug("MySQL connection closed.")

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
        """Return base table names in the configured database, sorted."""
        try:
            rows = self._query(_TABLES_SQL, (self.database,))
        except Exception:
            log.error("Could not list MySQL tables in '%s'", self.database, exc_info=True)
            return []
        return [coerce_str(row["table_name"]) for row in rows]

    def extract_schema(self, table_name: str) -> list[ColumnDescriptor]:
        """
        Read the column descriptors of *table_name*, in ordinal order.

        Returns:
            One descriptor per column, or an empty list when the table
            cannot be introspected.
        """
        try:
            columns = self._query(_COLUMNS_SQL, (self.database, table_name))
            foreign_rows = self._query(_FOREIGN_KEYS_SQL, (self.database, table_name))

            foreign_keys: dict[str, tuple[str, str]] = {}
            for row in foreign_rows:
                target = (coerce_str(row["foreign_table"]), coerce_str(row["foreign_column"]))
                if all(target):
                    foreign_keys.setdefault(coerce_str(row["column_name"]), target)

            result = [self._to_descriptor(table_name, row, foreign_keys) for row in columns]
        except Exception:
            log.error(
                "MySQL schema extraction failed for '%s.%s'",
                self.database, table_name, exc_info=True,
            )
            return []

        log.debug(
            "Extracted %d column(s) from MySQL table '%s.%s'",
            len(result), self.database, table_name,
        )
        return result

    @staticmethod
    def _to_descriptor(
        table_name: str, row: Row, foreign_keys: dict[str, tuple[str, str]]
    ) -> ColumnDescriptor:
        name = coerce_str(row["column_name"])
        column_key = (coerce_str(row.get("column_key")) or "").upper()
        extra = (coerce_str(row.get("extra")) or "").strip().lower()
        fk = foreign_keys.get(name)
        return ColumnDescriptor(
            table_name=table_name,
            column_name=name,
            data_type=coerce_str(row.get("data_type")) or "",
            length=coerce_int(row.get("length")),
            precision=coerce_int(row.get("precision")),
            scale=coerce_int(row.get("scale")),
            is_nullable=(coerce_str(row.get("is_nullable")) or "").upper() == "YES",
            is_primary=column_key == "PRI",
            is_unique=column_key in ("PRI", "UNI"),
            is_foreign=fk is not None,
            foreign_table=fk[0] if fk else None,
            foreign_column=fk[1] if fk else None,
            default_value=coerce_str(row.get("default_value")),
            auto_increment=extra == "auto_increment",
            description=coerce_str(row.get("description")) or "",
        )

    # ------------------------------------------------------------------
    # DDL generation
    # ------------------------------------------------------------------

    def create_table(self, columns: Iterable[ColumnDescriptor]) -> bool:
        """
        Create one table per distinct ``table_name`` in *columns*.

        MySQL commits DDL implicitly, so tables created before a failing
        statement stay in place.

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
                log.info("Created MySQL table '%s'", table_name)
            self._conn.commit()
            return True
        except Exception:
            log.error("MySQL table creation failed at '%s'", table_name, exc_info=True)
            rollback_quietly(self._conn)
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
        # MySQL rejects an explicit NULL on primary key columns
        return join_parts(
            [
                column.column_name,
                self.get_data_type_sql(column),
                "NULL" if column.is_nullable and not column.is_primary else "NOT NULL",
                "AUTO_INCREMENT" if column.auto_increment else None,
                f"DEFAULT {column.default_value}" if column.default_value else None,
                "UNIQUE" if column.is_unique and not column.is_primary else None,
                f"COMMENT '{escape_comment(column.description)}'" if column.description else None,
            ]
        )

    def get_data_type_sql(self, column: ColumnDescriptor) -> str:
        return canonical_to_native(
            self.dialect, column.data_type, column.length, column.precision, column.scale
        )
