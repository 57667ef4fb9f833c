"""
models/column.py
----------------
The dialect-neutral column descriptor shared by every introspector and
DDL generator.

Design Decision:
    ``ColumnDescriptor`` is a frozen ``@dataclass`` rather than a plain dict:
    * Catalog rows from three different drivers are converted into one
      strict shape at the introspector boundary.
    * Immutability means a table copy (renaming ``table_name``) always
      produces new values; nothing downstream can mutate a shared descriptor.
    * ``to_dict`` / ``from_dict`` give external JSON tooling a stable shape
      with the same field names as the dataclass.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

_TRUTHY = {"1", "t", "true", "y", "yes"}


def coerce_bool(value: Any) -> bool:
    """
    Interpret the boolean encodings drivers hand back.

    Examples::

        coerce_bool(1)      → True
        coerce_bool("YES")  → True
        coerce_bool("t")    → True
        coerce_bool(None)   → False
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", "replace")
    return str(value).strip().lower() in _TRUTHY


def coerce_int(value: Any) -> int | None:
    """Return *value* as an int, or None when absent or unparsable."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def coerce_str(value: Any) -> str | None:
    """Return *value* as a str (decoding bytes), or None when absent or empty."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", "replace")
    text = str(value)
    return text if text else None


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    Full schema-relevant metadata for one table column.

    Attributes:
        table_name:      Owning table (non-empty).
        column_name:     Column name, unique within ``table_name``.
        data_type:       Raw type name as found in the source; mapped to
                         native syntax only at generation time.
        length:          Character length, when the type has one.
        precision:       Numeric precision, when the type has one.
        scale:           Numeric scale, when the type has one.
        is_nullable:     True when the column has no NOT NULL constraint.
        is_primary:      Participates in the primary key (possibly composite).
        is_unique:       Participates in a unique constraint.
        is_foreign:      References another table's column.
        foreign_table:   Referenced table (with ``foreign_column``).
        foreign_column:  Referenced column (with ``foreign_table``).
        default_value:   Raw default expression in the source dialect.
        auto_increment:  Value is generated by the engine on insert.
        description:     Column comment; "" where the dialect has none.
    """
    table_name: str
    column_name: str
    data_type: str
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    is_nullable: bool = True
    is_primary: bool = False
    is_unique: bool = False
    is_foreign: bool = False
    foreign_table: str | None = None
    foreign_column: str | None = None
    default_value: str | None = None
    auto_increment: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        if not self.table_name:
            raise ValueError("ColumnDescriptor.table_name must not be empty")
        if not self.column_name:
            raise ValueError(
                f"ColumnDescriptor.column_name must not be empty (table '{self.table_name}')"
            )
        for name in ("length", "precision", "scale"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(
                    f"{self.table_name}.{self.column_name}: {name} must be non-negative, got {value}"
                )

    @property
    def has_foreign_target(self) -> bool:
        """True when the descriptor carries a complete foreign key reference."""
        return bool(self.is_foreign and self.foreign_table and self.foreign_column)

    def renamed(self, table_name: str) -> "ColumnDescriptor":
        """Return a copy of this descriptor owned by *table_name*."""
        return replace(self, table_name=table_name)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ColumnDescriptor":
        """
        Build a descriptor from a plain dict such as a JSON record.

        Missing optional keys fall back to the dataclass defaults and boolean
        flags accept the usual driver encodings (``1``, ``"YES"``, ``"t"``).
        """
        return ColumnDescriptor(
            table_name=str(data.get("table_name") or ""),
            column_name=str(data.get("column_name") or ""),
            data_type=str(data.get("data_type") or ""),
            length=coerce_int(data.get("length")),
            precision=coerce_int(data.get("precision")),
            scale=coerce_int(data.get("scale")),
            is_nullable=coerce_bool(data.get("is_nullable", True)),
            is_primary=coerce_bool(data.get("is_primary")),
            is_unique=coerce_bool(data.get("is_unique")),
            is_foreign=coerce_bool(data.get("is_foreign")),
            foreign_table=coerce_str(data.get("foreign_table")),
            foreign_column=coerce_str(data.get("foreign_column")),
            default_value=coerce_str(data.get("default_value")),
            auto_increment=coerce_bool(data.get("auto_increment")),
            description=coerce_str(data.get("description")) or "",
        )


def rename_table(columns: list[ColumnDescriptor], table_name: str) -> list[ColumnDescriptor]:
    """Return new descriptors for *columns* owned by *table_name*, order kept."""
    return [col.renamed(table_name) for col in columns]
