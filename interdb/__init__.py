"""interdb/__init__.py"""
from interdb.bridge import copy_table_schema, schema_manager_for
from interdb.database import (
    DatabaseError,
    connect_mysql,
    connect_postgres,
    connect_sqlite,
    create_postgres_pool,
)
from interdb.mysql_schema import MySqlSchemaManager
from interdb.postgres_schema import PostgresSchemaManager
from interdb.schema_utils import SchemaManager, group_by_table
from interdb.sqlite_schema import SqliteSchemaManager
from interdb.type_mapping import canonical_to_native, orm_to_sql_type, sql_to_orm_type

__all__ = [
    "copy_table_schema",
    "schema_manager_for",
    "DatabaseError",
    "connect_mysql",
    "connect_postgres",
    "connect_sqlite",
    "create_postgres_pool",
    "MySqlSchemaManager",
    "PostgresSchemaManager",
    "SchemaManager",
    "group_by_table",
    "SqliteSchemaManager",
    "canonical_to_native",
    "orm_to_sql_type",
    "sql_to_orm_type",
]
