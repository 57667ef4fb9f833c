"""
interdb/schema_utils.py
-----------------------
Helpers shared by the three dialect schema managers.

Only pure functions live here: grouping descriptors by table, turning
DB-API cursor results into dicts, and assembling the ``CREATE TABLE``
skeleton. Each dialect decides its own column fragments and key clauses.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Protocol

from logger import get_logger
from models.column import ColumnDescriptor

log = get_logger(__name__)

Row = dict[str, Any]


class SchemaManager(Protocol):
    """Capability set every dialect schema manager provides."""

    def extract_schema(self, table_name: str) -> list[ColumnDescriptor]: ...

    def create_table(self, columns: Iterable[ColumnDescriptor]) -> bool: ...

    def list_tables(self) -> list[str]: ...

    def close(self) -> None: ...


def group_by_table(columns: Iterable[ColumnDescriptor]) -> dict[str, list[ColumnDescriptor]]:
    """
    Group descriptors by ``table_name``.

    Tables appear in first-seen order and each table's columns keep their
    input order, which becomes the column order of the generated DDL.

    Example::

        group_by_table([a.id, b.id, a.name])  →  {"a": [a.id, a.name], "b": [b.id]}
    """
    groups: dict[str, list[ColumnDescriptor]] = {}
    for col in columns:
        groups.setdefault(col.table_name, []).append(col)
    return groups


def fetch_dicts(cursor: Any) -> list[Row]:
    """
    Fetch all rows from *cursor* as ``{column_label: value}`` dicts.

    Works for tuple-returning cursors (``sqlite3``, ``mysql.connector``,
    plain ``psycopg2``) and for dict cursors such as ``RealDictCursor``.
    Labels are taken verbatim from ``cursor.description``.
    """
    rows = cursor.fetchall() or []
    if not rows:
        return []
    if isinstance(rows[0], Mapping):
        return [dict(row) for row in rows]
    labels = [desc[0] for desc in cursor.description]
    return [dict(zip(labels, row)) for row in rows]


def foreign_key_clause(column: ColumnDescriptor) -> str:
    return (
        f"FOREIGN KEY ({column.column_name}) "
        f"REFERENCES {column.foreign_table} ({column.foreign_column})"
    )


def primary_key_columns(columns: Iterable[ColumnDescriptor]) -> list[str]:
    return [col.column_name for col in columns if col.is_primary]


def render_create_table(table_name: str, definitions: list[str]) -> str:
    """
    Join column definitions and table constraints into a ``CREATE TABLE``.

    Args:
        table_name:   Table name, emitted verbatim.
        definitions:  Column fragments followed by constraint clauses.
    """
    body = ",\n".join(f"  {line}" for line in definitions)
    return f"CREATE TABLE {table_name} (\n{body}\n)"


def join_parts(parts: Iterable[str | None]) -> str:
    """Space-join the non-empty fragments of a column definition."""
    return " ".join(part for part in parts if part)


def rollback_quietly(connection: Any) -> None:
    """Roll back *connection*, logging instead of raising if that fails too."""
    try:
        connection.rollback()
    except Exception as exc:
        log.warning("Rollback failed: %s", exc)
