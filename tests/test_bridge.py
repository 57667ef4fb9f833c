"""
tests/test_bridge.py
--------------------
Tests for interdb/bridge.py: dialect dispatch and cross-database copies.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock

import pytest

from interdb.bridge import copy_table_schema, schema_manager_for
from interdb.mysql_schema import MySqlSchemaManager
from interdb.postgres_schema import PostgresSchemaManager
from interdb.sqlite_schema import SqliteSchemaManager
from models.column import ColumnDescriptor
from models.connection import Dialect


@pytest.fixture
def source() -> SqliteSchemaManager:
    conn = sqlite3.connect(":memory:")
    conn.executescript(
        """
        CREATE TABLE accounts (
            id INTEGER PRIMARY KEY,
            handle VARCHAR(40) NOT NULL UNIQUE,
            balance DECIMAL(12, 2) DEFAULT 0
        );
        """
    )
    mgr = SqliteSchemaManager(conn)
    yield mgr
    mgr.close()


@pytest.fixture
def target() -> SqliteSchemaManager:
    mgr = SqliteSchemaManager(sqlite3.connect(":memory:"))
    yield mgr
    mgr.close()


class TestSchemaManagerFor:
    def test_sqlite(self) -> None:
        mgr = schema_manager_for("sqlite", sqlite3.connect(":memory:"))
        assert isinstance(mgr, SqliteSchemaManager)
        mgr.close()

    def test_mysql_takes_database(self) -> None:
        mgr = schema_manager_for(Dialect.MYSQL, MagicMock(), database="shop")
        assert isinstance(mgr, MySqlSchemaManager)
        assert mgr.database == "shop"

    def test_postgres_takes_schema(self) -> None:
        mgr = schema_manager_for("postgres", MagicMock(), schema="sales")
        assert isinstance(mgr, PostgresSchemaManager)
        assert mgr.schema == "sales"

    def test_unknown_dialect(self) -> None:
        with pytest.raises(ValueError):
            schema_manager_for("oracle", MagicMock())


class TestCopyTableSchema:
    def test_copy_between_sqlite_databases(
        self, source: SqliteSchemaManager, target: SqliteSchemaManager
    ) -> None:
        assert copy_table_schema(source, target, "accounts") is True
        original = source.extract_schema("accounts")
        copied = target.extract_schema("accounts")
        assert [c.column_name for c in copied] == ["id", "handle", "balance"]
        for before, after in zip(original, copied):
            assert before.is_primary == after.is_primary
            assert before.is_nullable == after.is_nullable
            assert before.auto_increment == after.auto_increment
            assert before.is_unique == after.is_unique

    def test_copy_with_rename(
        self, source: SqliteSchemaManager, target: SqliteSchemaManager
    ) -> None:
        assert copy_table_schema(source, target, "accounts", "accounts_archive") is True
        assert target.list_tables() == ["accounts_archive"]

    def test_missing_source_table(
        self, source: SqliteSchemaManager, target: SqliteSchemaManager
    ) -> None:
        assert copy_table_schema(source, target, "missing") is False
        assert target.list_tables() == []

    def test_target_failure(self, source: SqliteSchemaManager) -> None:
        target = MagicMock()
        target.create_table.return_value = False
        assert copy_table_schema(source, target, "accounts") is False

    def test_sqlite_to_postgres_ddl(self, source: SqliteSchemaManager) -> None:
        conn = MagicMock()
        target = PostgresSchemaManager(conn, schema="public")
        assert copy_table_schema(source, target, "accounts") is True
        ddl = conn.cursor.return_value.execute.call_args[0][0]
        assert "id INTEGER NOT NULL GENERATED ALWAYS AS IDENTITY" in ddl
        assert "handle VARCHAR(40) NOT NULL UNIQUE" in ddl
        assert "balance DECIMAL(12, 2) NULL DEFAULT 0" in ddl
        assert "PRIMARY KEY (id)" in ddl

    def test_passes_renamed_descriptors(self) -> None:
        source = MagicMock()
        source.extract_schema.return_value = [
            ColumnDescriptor(table_name="a", column_name="id", data_type="INT"),
        ]
        target = MagicMock()
        target.create_table.return_value = True
        assert copy_table_schema(source, target, "a", "b")
        (columns,), _ = target.create_table.call_args
        assert [c.table_name for c in columns] == ["b"]
