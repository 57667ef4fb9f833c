"""
tests/test_sqlite_schema.py
---------------------------
Tests for interdb/sqlite_schema.py against real in-memory SQLite databases.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock

import pytest

from interdb.sqlite_schema import SqliteSchemaManager, quote_identifier
from models.column import ColumnDescriptor
from models.connection import SqliteConfig

_FIXTURE_DDL = """
CREATE TABLE teams (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    email VARCHAR(120) NOT NULL UNIQUE,
    team_id INTEGER REFERENCES teams(id),
    score REAL DEFAULT 0
);
CREATE TABLE memberships (
    user_id INTEGER,
    team_id INTEGER,
    role TEXT DEFAULT 'member',
    PRIMARY KEY (user_id, team_id)
);
CREATE TABLE notes (
    id INTEGER PRIMARY KEY,
    team_id INTEGER REFERENCES teams
);
CREATE TABLE tags (
    code TEXT PRIMARY KEY,
    label BIGINT
);
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def conn() -> sqlite3.Connection:
    connection = sqlite3.connect(":memory:")
    connection.executescript(_FIXTURE_DDL)
    yield connection
    connection.close()


@pytest.fixture
def manager(conn: sqlite3.Connection) -> SqliteSchemaManager:
    return SqliteSchemaManager(conn)


def _by_name(columns: list[ColumnDescriptor]) -> dict[str, ColumnDescriptor]:
    return {col.column_name: col for col in columns}


def _example_columns(table: str = "t") -> list[ColumnDescriptor]:
    return [
        ColumnDescriptor(
            table_name=table, column_name="id", data_type="INTEGER",
            is_primary=True, is_unique=True, auto_increment=True,
        ),
        ColumnDescriptor(
            table_name=table, column_name="name", data_type="VARCHAR",
            length=100, is_nullable=False,
        ),
    ]


# ---------------------------------------------------------------------------
# extract_schema
# ---------------------------------------------------------------------------

class TestExtractSchema:
    def test_column_order(self, manager: SqliteSchemaManager) -> None:
        cols = manager.extract_schema("users")
        assert [c.column_name for c in cols] == ["id", "email", "team_id", "score"]
        assert all(c.table_name == "users" for c in cols)

    def test_integer_primary_key_is_auto_increment(self, manager: SqliteSchemaManager) -> None:
        col = _by_name(manager.extract_schema("users"))["id"]
        assert col.is_primary
        assert col.is_unique
        assert col.auto_increment

    def test_text_primary_key_is_not_auto_increment(self, manager: SqliteSchemaManager) -> None:
        col = _by_name(manager.extract_schema("tags"))["code"]
        assert col.is_primary
        assert col.is_unique
        assert not col.auto_increment

    def test_unique_index_column(self, manager: SqliteSchemaManager) -> None:
        cols = _by_name(manager.extract_schema("users"))
        assert cols["email"].is_unique
        assert not cols["email"].is_primary
        assert not cols["email"].is_nullable
        assert cols["email"].data_type == "VARCHAR(120)"

    def test_plain_column_flags(self, manager: SqliteSchemaManager) -> None:
        col = _by_name(manager.extract_schema("users"))["score"]
        assert not (col.is_primary or col.is_unique or col.is_foreign)
        assert col.foreign_table is None and col.foreign_column is None
        assert col.default_value == "0"
        assert col.description == ""

    def test_foreign_key(self, manager: SqliteSchemaManager) -> None:
        col = _by_name(manager.extract_schema("users"))["team_id"]
        assert col.is_foreign
        assert (col.foreign_table, col.foreign_column) == ("teams", "id")

    def test_implicit_foreign_key_target_resolves_to_parent_key(
        self, manager: SqliteSchemaManager
    ) -> None:
        col = _by_name(manager.extract_schema("notes"))["team_id"]
        assert (col.foreign_table, col.foreign_column) == ("teams", "id")

    def test_composite_primary_key(self, manager: SqliteSchemaManager) -> None:
        cols = _by_name(manager.extract_schema("memberships"))
        assert cols["user_id"].is_primary and cols["team_id"].is_primary
        assert cols["user_id"].auto_increment
        assert cols["team_id"].auto_increment
        assert cols["role"].default_value == "'member'"

    def test_mixed_composite_key_flags_only_integer_member(
        self, conn: sqlite3.Connection
    ) -> None:
        conn.execute("CREATE TABLE m (a INTEGER, b TEXT, PRIMARY KEY (a, b))")
        manager = SqliteSchemaManager(conn)
        cols = _by_name(manager.extract_schema("m"))
        assert cols["a"].auto_increment
        assert not cols["b"].auto_increment

        sql = manager.generate_create_table_sql("m", list(cols.values()))
        assert "PRIMARY KEY (a, b)" in sql
        assert "a INTEGER PRIMARY KEY" not in sql
        assert "AUTOINCREMENT" not in sql

    @pytest.mark.parametrize("table", ["teams", "users", "memberships", "notes", "tags"])
    def test_primary_implies_unique(self, manager: SqliteSchemaManager, table: str) -> None:
        for col in manager.extract_schema(table):
            if col.is_primary:
                assert col.is_unique

    @pytest.mark.parametrize("table", ["teams", "users", "memberships", "notes", "tags"])
    def test_foreign_fields_paired(self, manager: SqliteSchemaManager, table: str) -> None:
        for col in manager.extract_schema(table):
            assert (col.foreign_table is None) == (col.foreign_column is None)
            assert col.is_foreign == (col.foreign_table is not None)

    def test_unknown_table_returns_empty(self, manager: SqliteSchemaManager) -> None:
        assert manager.extract_schema("missing") == []

    def test_closed_connection_returns_empty(self, conn: sqlite3.Connection) -> None:
        manager = SqliteSchemaManager(conn)
        conn.close()
        assert manager.extract_schema("users") == []

    def test_odd_table_name_is_quoted(self, conn: sqlite3.Connection) -> None:
        conn.execute('CREATE TABLE "order" ("select" INTEGER)')
        cols = SqliteSchemaManager(conn).extract_schema("order")
        assert [c.column_name for c in cols] == ["select"]

    def test_quote_identifier(self) -> None:
        assert quote_identifier('we"ird') == '"we""ird"'


# ---------------------------------------------------------------------------
# DDL generation
# ---------------------------------------------------------------------------

class TestGenerateSql:
    def test_example_table(self, manager: SqliteSchemaManager) -> None:
        sql = manager.generate_create_table_sql("t", _example_columns())
        assert "id INTEGER PRIMARY KEY" in sql
        assert "name TEXT(100) NOT NULL" in sql
        assert "PRIMARY KEY (" not in sql
        assert sql == "CREATE TABLE t (\n  id INTEGER PRIMARY KEY,\n  name TEXT(100) NOT NULL\n)"

    def test_composite_key_is_out_of_line(self, manager: SqliteSchemaManager) -> None:
        cols = manager.extract_schema("memberships")
        sql = manager.generate_create_table_sql("memberships", cols)
        assert "PRIMARY KEY (user_id, team_id)" in sql
        assert "user_id INTEGER," in sql
        assert "role TEXT DEFAULT 'member'" in sql

    def test_unique_and_default(self, manager: SqliteSchemaManager) -> None:
        col = ColumnDescriptor(
            table_name="t", column_name="code", data_type="varchar", length=8,
            is_nullable=False, is_unique=True, default_value="'x'",
        )
        assert manager.generate_column_sql(col) == "code TEXT(8) NOT NULL UNIQUE DEFAULT 'x'"

    def test_foreign_key_clause(self, manager: SqliteSchemaManager) -> None:
        cols = manager.extract_schema("users")
        sql = manager.generate_create_table_sql("users", cols)
        assert sql.endswith("FOREIGN KEY (team_id) REFERENCES teams (id)\n)")

    def test_incomplete_foreign_key_is_skipped(self, manager: SqliteSchemaManager) -> None:
        col = ColumnDescriptor(
            table_name="t", column_name="ref", data_type="INTEGER",
            is_foreign=True, foreign_table="teams",
        )
        assert "FOREIGN KEY" not in manager.generate_create_table_sql("t", [col])

    def test_custom_type_passthrough(self, manager: SqliteSchemaManager) -> None:
        col = ColumnDescriptor(table_name="t", column_name="c", data_type="CUSTOMTYPE")
        assert manager.get_data_type_sql(col) == "CUSTOMTYPE"
        assert "c CUSTOMTYPE" in manager.generate_create_table_sql("t", [col])

    def test_empty_default_is_ignored(self, manager: SqliteSchemaManager) -> None:
        col = ColumnDescriptor(table_name="t", column_name="c", data_type="TEXT", default_value="")
        assert manager.generate_column_sql(col) == "c TEXT"


# ---------------------------------------------------------------------------
# create_table
# ---------------------------------------------------------------------------

class TestCreateTable:
    def test_round_trip(self, manager: SqliteSchemaManager) -> None:
        assert manager.create_table(_example_columns("t")) is True
        cols = _by_name(manager.extract_schema("t"))
        assert list(cols) == ["id", "name"]
        assert cols["id"].is_primary and cols["id"].auto_increment
        assert cols["id"].is_nullable
        assert not cols["name"].is_primary
        assert not cols["name"].is_nullable
        assert cols["name"].data_type == "TEXT(100)"

    def test_copy_existing_table(self, manager: SqliteSchemaManager) -> None:
        original = manager.extract_schema("memberships")
        assert manager.create_table([c.renamed("memberships_copy") for c in original])
        copied = manager.extract_schema("memberships_copy")
        for before, after in zip(original, copied):
            assert before.column_name == after.column_name
            assert before.is_primary == after.is_primary
            assert before.is_nullable == after.is_nullable
            assert before.auto_increment == after.auto_increment

    def test_multiple_tables(self, manager: SqliteSchemaManager) -> None:
        cols = _example_columns("a") + _example_columns("b")
        assert manager.create_table(cols)
        assert {"a", "b"} <= set(manager.list_tables())

    def test_failure_stops_batch(self, manager: SqliteSchemaManager) -> None:
        cols = _example_columns("teams") + _example_columns("never_created")
        assert manager.create_table(cols) is False
        assert "never_created" not in manager.list_tables()

    def test_failure_with_dead_connection(self) -> None:
        conn = MagicMock()
        conn.cursor.side_effect = sqlite3.ProgrammingError("closed")
        conn.rollback.side_effect = sqlite3.ProgrammingError("closed")
        assert SqliteSchemaManager(conn).create_table(_example_columns()) is False

    def test_group_by_table_delegates(self) -> None:
        groups = SqliteSchemaManager.group_by_table(_example_columns("x"))
        assert list(groups) == ["x"]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_list_tables_sorted(self, manager: SqliteSchemaManager) -> None:
        assert manager.list_tables() == ["memberships", "notes", "tags", "teams", "users"]

    def test_from_config_context_manager(self) -> None:
        with SqliteSchemaManager.from_config(SqliteConfig()) as mgr:
            assert mgr.create_table(_example_columns("t"))
            assert mgr.list_tables() == ["t"]
        assert mgr.list_tables() == []

    def test_close_is_idempotent(self, manager: SqliteSchemaManager) -> None:
        manager.close()
        manager.close()
