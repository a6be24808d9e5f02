"""Engine-agnostic schema model produced by introspection.

Every entity is a frozen dataclass holding tuples, so an assembled
``Schema`` can be shared freely and compared structurally.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple


class TypeFamily(str, Enum):
    """Canonical column type families."""
    INTEGER = "integer"
    BIG_INTEGER = "big_integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    STRING = "string"
    TEXT = "text"
    BINARY = "binary"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    JSON = "json"
    UUID = "uuid"
    ENUM = "enum"
    UNSUPPORTED = "unsupported"

    @property
    def is_numeric(self) -> bool:
        return self in (TypeFamily.INTEGER, TypeFamily.BIG_INTEGER, TypeFamily.FLOAT, TypeFamily.DECIMAL)

    @property
    def is_temporal(self) -> bool:
        return self in (TypeFamily.DATE, TypeFamily.TIME, TypeFamily.DATETIME)

    @property
    def is_textual(self) -> bool:
        return self in (TypeFamily.STRING, TypeFamily.TEXT)


class ForeignKeyAction(str, Enum):
    """Referential actions for ON DELETE / ON UPDATE."""
    CASCADE = "cascade"
    RESTRICT = "restrict"
    SET_NULL = "set_null"
    SET_DEFAULT = "set_default"
    NO_ACTION = "no_action"


class DefaultKind(str, Enum):
    """Kinds of column default values."""
    LITERAL = "literal"
    SEQUENCE_NEXT = "sequence_next"
    EXPRESSION = "expression"
    NOW = "now"
    NULL = "null"


@dataclass(frozen=True)
class ColumnType:
    """Normalized column type.

    ``native_type`` is the engine's own spelling and re-normalizes to the
    same family. ``length`` applies to String, ``precision``/``scale`` to
    Decimal and ``enum_name`` to Enum.
    """
    family: TypeFamily
    native_type: str
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    enum_name: Optional[str] = None
    is_array: bool = False

    @property
    def is_enum(self) -> bool:
        return self.family is TypeFamily.ENUM

    @property
    def is_unsupported(self) -> bool:
        return self.family is TypeFamily.UNSUPPORTED


@dataclass(frozen=True)
class DefaultValue:
    """A column default.

    Use the constructors (``literal``, ``sequence_next``, ``expression``,
    ``now``, ``null``) rather than building instances by hand.
    """
    kind: DefaultKind
    value: Any = None
    sequence_name: Optional[str] = None
    expression_text: Optional[str] = None

    @classmethod
    def literal(cls, value: Any) -> "DefaultValue":
        return cls(kind=DefaultKind.LITERAL, value=value)

    @classmethod
    def sequence_next(cls, sequence_name: str) -> "DefaultValue":
        return cls(kind=DefaultKind.SEQUENCE_NEXT, sequence_name=sequence_name)

    @classmethod
    def expression(cls, text: str) -> "DefaultValue":
        return cls(kind=DefaultKind.EXPRESSION, expression_text=text)

    @classmethod
    def now(cls) -> "DefaultValue":
        return cls(kind=DefaultKind.NOW)

    @classmethod
    def null(cls) -> "DefaultValue":
        return cls(kind=DefaultKind.NULL)

    @property
    def is_literal(self) -> bool:
        return self.kind is DefaultKind.LITERAL

    @property
    def is_sequence_next(self) -> bool:
        return self.kind is DefaultKind.SEQUENCE_NEXT

    @property
    def is_expression(self) -> bool:
        return self.kind is DefaultKind.EXPRESSION

    @property
    def is_now(self) -> bool:
        return self.kind is DefaultKind.NOW

    @property
    def is_null(self) -> bool:
        return self.kind is DefaultKind.NULL


@dataclass(frozen=True)
class Column:
    """Represents a table column."""
    name: str
    column_type: ColumnType
    is_nullable: bool = True
    default: Optional[DefaultValue] = None
    is_identity: bool = False


@dataclass(frozen=True)
class Index:
    """Represents an index; the primary key is an index with ``is_primary_key`` set."""
    name: str
    columns: Tuple[str, ...]
    is_unique: bool = False
    is_primary_key: bool = False


@dataclass(frozen=True)
class ForeignKey:
    """Represents a foreign key constraint."""
    columns: Tuple[str, ...]
    referenced_table: str
    referenced_columns: Tuple[str, ...]
    on_delete: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    on_update: ForeignKeyAction = ForeignKeyAction.NO_ACTION
    constraint_name: Optional[str] = None


@dataclass(frozen=True)
class EnumDefinition:
    """A named enumeration and its ordered labels."""
    name: str
    variants: Tuple[str, ...]


@dataclass(frozen=True)
class Sequence:
    """A database sequence."""
    name: str
    start_value: Optional[int] = None
    current_value: Optional[int] = None
    increment: Optional[int] = None


@dataclass(frozen=True)
class Anomaly:
    """A catalog fact accepted as-is but worth flagging (never corrected)."""
    kind: str
    table: str
    message: str
    column: Optional[str] = None


@dataclass(frozen=True)
class Table:
    """Represents a table with its columns in catalog order."""
    name: str
    columns: Tuple[Column, ...] = ()
    indexes: Tuple[Index, ...] = ()
    foreign_keys: Tuple[ForeignKey, ...] = ()

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def primary_key(self) -> Optional[Index]:
        for index in self.indexes:
            if index.is_primary_key:
                return index
        return None

    def get_column(self, name: str) -> Optional[Column]:
        """Find a column by exact name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def get_index(self, name: str) -> Optional[Index]:
        """Find an index by exact name."""
        for index in self.indexes:
            if index.name == name:
                return index
        return None


@dataclass(frozen=True)
class Schema:
    """Root of the model: one described schema of one database."""
    name: str
    engine: str
    tables: Tuple[Table, ...] = ()
    enums: Tuple[EnumDefinition, ...] = ()
    sequences: Tuple[Sequence, ...] = ()
    anomalies: Tuple[Anomaly, ...] = ()

    @property
    def table_names(self) -> Tuple[str, ...]:
        return tuple(table.name for table in self.tables)

    def get_table(self, name: str) -> Optional[Table]:
        """Find a table by exact name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def get_enum(self, name: str) -> Optional[EnumDefinition]:
        """Find an enum by exact name."""
        for enum in self.enums:
            if enum.name == name:
                return enum
        return None

    def get_sequence(self, name: str) -> Optional[Sequence]:
        """Find a sequence by exact name."""
        for sequence in self.sequences:
            if sequence.name == name:
                return sequence
        return None


def is_mariadb_version(version: Optional[str]) -> bool:
    """Whether a server version string comes from MariaDB."""
    return version is not None and "mariadb" in version.lower()


@dataclass(frozen=True)
class SchemaMetadata:
    """Summary facts about a schema, cheaper to obtain than a full description."""
    schema_name: str
    engine: str
    table_count: int
    size_in_bytes: int
    version: Optional[str] = None

    @property
    def is_mariadb(self) -> bool:
        return is_mariadb_version(self.version)
