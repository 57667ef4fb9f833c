"""models/__init__.py"""
from models.column import ColumnDescriptor, rename_table
from models.connection import DatabaseConfig, Dialect, SqliteConfig

__all__ = [
    "ColumnDescriptor",
    "rename_table",
    "DatabaseConfig",
    "Dialect",
    "SqliteConfig",
]
