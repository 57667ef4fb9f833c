"""
interdb/type_mapping.py
-----------------------
Canonical → native type rendering for SQLite, MySQL and PostgreSQL, plus the
ORM-style type vocabulary used by schema-file tooling.

Every canonical name is looked up case-insensitively in a per-dialect table.
A table entry is either a fixed native name or one of the parameterised
renderers below (sized text, sized varchar, sized int, decimal). Names with
no entry are returned exactly as given.

Design Decision:
    Pure functions with no side effects, and domain knowledge kept as data
    (frozensets + dicts) rather than an if/else chain. DDL correctness
    depends on exact syntax per engine, so nothing is inferred from
    substrings of the type name.
"""
from __future__ import annotations

from typing import Callable

from models.connection import Dialect

TypeRenderer = Callable[[int | None, int | None, int | None], str]  # length, precision, scale


# ---------------------------------------------------------------------------
# Type families
# ---------------------------------------------------------------------------
_INTEGER_TYPES = frozenset(
    {
        "INT", "INTEGER", "TINYINT", "SMALLINT", "MEDIUMINT", "BIGINT",
        "INT2", "INT4", "INT8", "UNSIGNED BIG INT",
    }
)
_CHARACTER_TYPES = frozenset(
    {
        "VARCHAR", "CHARACTER VARYING", "VARYING CHARACTER", "CHAR", "CHARACTER",
        "NCHAR", "NATIVE CHARACTER", "NVARCHAR",
    }
)
_DECIMAL_TYPES = frozenset({"DECIMAL", "NUMERIC"})
_SQLITE_REAL_TYPES = frozenset({"REAL", "DOUBLE", "DOUBLE PRECISION", "FLOAT"})
_SQLITE_NUMERIC_AFFINITY = frozenset({"BOOLEAN", "DATE", "DATETIME"})


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------

def _fixed(native: str) -> TypeRenderer:
    return lambda length, precision, scale: native


def _sized_text(length: int | None, precision: int | None, scale: int | None) -> str:
    return f"TEXT({length})" if length else "TEXT"


def _sized_varchar(length: int | None, precision: int | None, scale: int | None) -> str:
    return f"VARCHAR({length or 255})"


def _sized_int(length: int | None, precision: int | None, scale: int | None) -> str:
    return f"INT({precision})" if precision else "INT"


def _decimal(length: int | None, precision: int | None, scale: int | None) -> str:
    return f"DECIMAL({precision or 10},{scale or 0})"


def _table(*entries: tuple[frozenset[str] | str, TypeRenderer]) -> dict[str, TypeRenderer]:
    table: dict[str, TypeRenderer] = {}
    for names, renderer in entries:
        for name in ([names] if isinstance(names, str) else names):
            table[name] = renderer
    return table


# ---------------------------------------------------------------------------
# Per-dialect tables
# ---------------------------------------------------------------------------
# SQLite types are advisory (type affinity), so everything collapses onto the
# five storage classes it understands.
SQLITE_TYPES = _table(
    (_INTEGER_TYPES, _fixed("INTEGER")),
    (_CHARACTER_TYPES, _sized_text),
    (frozenset({"TEXT", "CLOB"}), _fixed("TEXT")),
    ("BLOB", _fixed("BLOB")),
    (_SQLITE_REAL_TYPES, _fixed("REAL")),
    (_DECIMAL_TYPES | _SQLITE_NUMERIC_AFFINITY, _fixed("NUMERIC")),
)

MYSQL_TYPES = _table(
    (_INTEGER_TYPES, _sized_int),
    (_CHARACTER_TYPES, _sized_varchar),
    (_DECIMAL_TYPES, _decimal),
)

POSTGRES_TYPES = _table(
    (_INTEGER_TYPES, _fixed("INTEGER")),
    (_CHARACTER_TYPES, _sized_varchar),
    (_DECIMAL_TYPES, _decimal),
    ("SERIAL", _fixed("SERIAL")),
    ("BIGSERIAL", _fixed("BIGSERIAL")),
)

_DIALECT_TABLES: dict[Dialect, dict[str, TypeRenderer]] = {
    Dialect.SQLITE: SQLITE_TYPES,
    Dialect.MYSQL: MYSQL_TYPES,
    Dialect.POSTGRES: POSTGRES_TYPES,
}


def normalize_type_name(data_type: str) -> str:
    """
    Upper-case *data_type* and collapse internal whitespace.

    Examples::

        normalize_type_name("character  varying")  →  "CHARACTER VARYING"
        normalize_type_name(" int ")               →  "INT"
    """
    return " ".join((data_type or "").split()).upper()


def canonical_to_native(
    dialect: Dialect | str,
    data_type: str,
    length: int | None = None,
    precision: int | None = None,
    scale: int | None = None,
) -> str:
    """
    Render a canonical type name as the native type string for *dialect*.

    Args:
        dialect:    Target :class:`Dialect` (or its string value).
        data_type:  Canonical/raw type name, matched case-insensitively.
        length:     Character length for the character family.
        precision:  Numeric precision (decimal family, MySQL ``INT(p)``).
        scale:      Numeric scale for the decimal family.

    Returns:
        The native type string; unmapped names come back unchanged.

    Raises:
        ValueError: If *dialect* is not a supported dialect.

    Examples::

        canonical_to_native("mysql", "varchar", length=100)          →  "VARCHAR(100)"
        canonical_to_native("postgres", "DECIMAL", None, 10, 2)      →  "DECIMAL(10,2)"
        canonical_to_native("sqlite", "VARCHAR", length=255)         →  "TEXT(255)"
        canonical_to_native("sqlite", "CUSTOMTYPE")                  →  "CUSTOMTYPE"
    """
    table = _DIALECT_TABLES[Dialect(dialect)]
    renderer = table.get(normalize_type_name(data_type))
    if renderer is None:
        return data_type
    return renderer(length, precision, scale)


# ---------------------------------------------------------------------------
# ORM type vocabulary
# ---------------------------------------------------------------------------
_SQL_TO_ORM: dict[str, str] = {
    "int": "Int",
    "integer": "Int",
    "serial": "Int",
    "bigint": "BigInt",
    "bigserial": "BigInt",
    "varchar": "String",
    "character varying": "String",
    "text": "String",
    "char": "String",
    "character": "String",
    "uuid": "String",
    "boolean": "Boolean",
    "bool": "Boolean",
    "real": "Float",
    "float": "Float",
    "float4": "Float",
    "double": "Float",
    "double precision": "Float",
    "float8": "Float",
    "decimal": "Decimal",
    "numeric": "Decimal",
    "date": "Date",
    "time": "DateTime",
    "timetz": "DateTime",
    "timestamp": "DateTime",
    "timestamptz": "DateTime",
    "json": "Json",
    "jsonb": "Json",
}

_ORM_TO_SQL: dict[str, str] = {
    "Int": "INTEGER",
    "BigInt": "BIGINT",
    "String": "VARCHAR",
    "Boolean": "BOOLEAN",
    "Float": "FLOAT",
    "Decimal": "DECIMAL",
    "DateTime": "TIMESTAMP",
    "Date": "DATE",
    "Json": "JSON",
    "Bytes": "BYTEA",
}


def sql_to_orm_type(data_type: str) -> str:
    """Map a SQL type name to the ORM scalar vocabulary; unknown names map to ``String``."""
    return _SQL_TO_ORM.get(normalize_type_name(data_type).lower(), "String")


def orm_to_sql_type(orm_type: str) -> str:
    """Map an ORM scalar type back to a canonical SQL type; unknown names map to ``VARCHAR``."""
    return _ORM_TO_SQL.get(orm_type.strip(), "VARCHAR")
