"""Raw catalog facts as read from an engine, before normalization."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..models import ForeignKeyAction


@dataclass
class RawColumn:
    """A column row as reported by the catalog."""
    table: str
    name: str
    native_type: str
    is_nullable: bool = True
    default: Optional[str] = None
    # MySQL marks expression defaults with DEFAULT_GENERATED
    default_is_expression: bool = False
    is_identity: bool = False
    # Name of the enum this column uses when it cannot be read from native_type
    enum_name: Optional[str] = None


@dataclass
class RawTable:
    """A table and its columns in catalog order."""
    name: str
    columns: List[RawColumn] = field(default_factory=list)


@dataclass
class RawIndex:
    """An index row; columns are in key order."""
    table: str
    name: str
    columns: List[str] = field(default_factory=list)
    is_unique: bool = False
    is_primary_key: bool = False


@dataclass
class RawForeignKey:
    """A foreign key constraint.

    An empty ``referenced_columns`` list means the constraint targets the
    referenced table's primary key (SQLite shorthand).
    """
    table: str
    constraint_name: Optional[str]
    columns: List[str]
    referenced_table: str
    referenced_columns: List[str]
    on_delete: ForeignKeyAction
    on_update: ForeignKeyAction
    referenced_schema: Optional[str] = None


@dataclass
class RawEnum:
    """A named enumerated type and its labels in declaration order."""
    name: str
    labels: List[str] = field(default_factory=list)


@dataclass
class RawSequence:
    """A sequence and its counters."""
    name: str
    start_value: Optional[int] = None
    current_value: Optional[int] = None
    increment: Optional[int] = None


@dataclass
class CatalogSnapshot:
    """The five raw result sets a backend produces for one schema."""
    schema_name: str
    tables: List[RawTable] = field(default_factory=list)
    indexes: List[RawIndex] = field(default_factory=list)
    foreign_keys: List[RawForeignKey] = field(default_factory=list)
    enums: List[RawEnum] = field(default_factory=list)
    sequences: List[RawSequence] = field(default_factory=list)
