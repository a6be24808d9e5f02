"""Database-specific type normalization.

Each mapper turns an engine's native type string into a ``ColumnType``.
The native string alone determines the family (plus, for engines with
inline enums, the enum name the backend assigned), so normalizing
``column_type.native_type`` again always lands on the same family.
"""

import logging
import re
from abc import ABC
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .models import ColumnType, EnumDefinition, TypeFamily

logger = logging.getLogger(__name__)

# Integers wider than this many bits normalize to BigInteger
BIG_INTEGER_THRESHOLD = 32

_ARRAY_SUFFIX_RE = re.compile(r"(\s*\[\d*\])+$")
_MODIFIER_WORDS = ("unsigned", "signed", "zerofill")


@dataclass
class NativeType:
    """A native type string split into its parts."""
    raw: str
    base: str
    args: List[str] = field(default_factory=list)
    is_array: bool = False
    is_unsigned: bool = False

    def int_arg(self, position: int) -> Optional[int]:
        if position >= len(self.args):
            return None
        try:
            return int(self.args[position].strip())
        except ValueError:
            return None


def split_arguments(text: str) -> List[str]:
    """Split a modifier list on top-level commas, respecting quotes and parentheses."""
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None
    i = 0
    while i < len(text):
        char = text[i]
        if quote:
            current.append(char)
            if char == quote:
                # A doubled quote is an escaped quote inside the literal
                if i + 1 < len(text) and text[i + 1] == quote:
                    current.append(text[i + 1])
                    i += 1
                else:
                    quote = None
            elif char == "\\" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 1
        elif char in ("'", '"'):
            quote = char
            current.append(char)
        elif char == "(":
            depth += 1
            current.append(char)
        elif char == ")":
            depth -= 1
            current.append(char)
        elif char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    if current or parts:
        parts.append("".join(current).strip())
    return parts


def parse_quoted_labels(args: List[str]) -> List[str]:
    """Decode enum labels written as SQL string literals."""
    labels = []
    for arg in args:
        value = arg.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            quote = value[0]
            value = value[1:-1].replace(quote + quote, quote).replace("\\" + quote, quote)
        labels.append(value)
    return labels


def parse_native_type(native: str) -> NativeType:
    """Split a native type such as ``numeric(10,2)`` or ``int(11) unsigned``."""
    raw = native
    text = native.strip()
    is_array = False

    array_match = _ARRAY_SUFFIX_RE.search(text)
    if array_match:
        is_array = True
        text = text[:array_match.start()].strip()
    elif text.upper().endswith(" ARRAY"):
        is_array = True
        text = text[:-len(" ARRAY")].strip()

    args: List[str] = []
    open_paren = text.find("(")
    if open_paren != -1:
        depth = 0
        quote: Optional[str] = None
        close_paren = -1
        for position in range(open_paren, len(text)):
            char = text[position]
            if quote:
                if char == quote:
                    quote = None
            elif char in ("'", '"'):
                quote = char
            elif char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0:
                    close_paren = position
                    break
        if close_paren != -1:
            args = split_arguments(text[open_paren + 1:close_paren])
            text = text[:open_paren] + " " + text[close_paren + 1:]

    words = text.lower().split()
    is_unsigned = "unsigned" in words
    base = " ".join(word for word in words if word not in _MODIFIER_WORDS)
    return NativeType(raw=raw, base=base, args=args, is_array=is_array, is_unsigned=is_unsigned)


def _unquote_part(part: str) -> str:
    part = part.strip()
    if len(part) >= 2 and part[0] == part[-1] and part[0] in ('"', "`"):
        quote = part[0]
        return part[1:-1].replace(quote + quote, quote)
    return part


def split_qualified_identifier(name: str) -> Tuple[Optional[str], str]:
    """Split ``"public"."Mood"`` into ``("public", "Mood")``; the qualifier is None when absent."""
    text = name.strip()
    parts = re.findall(r'"(?:[^"]|"")*"|`(?:[^`]|``)*`|[^.]+', text)
    if not parts:
        return None, text
    qualifier = _unquote_part(parts[-2]) if len(parts) > 1 else None
    return qualifier, _unquote_part(parts[-1])


def unquote_identifier(name: str) -> str:
    """Strip a schema qualifier and identifier quotes: ``"public"."Mood"`` -> ``Mood``."""
    return split_qualified_identifier(name)[1]


Rule = Callable[[NativeType, "MappingContext"], Optional[ColumnType]]


@dataclass
class MappingContext:
    """Per-column inputs beyond the native type string."""
    enums: Mapping[str, EnumDefinition]
    enum_name: Optional[str] = None
    # Schema being described; enums qualified with another schema are not local
    schema: Optional[str] = None


class TypeMapper(ABC):
    """Base class for engine type normalizers.

    Subclasses fill in the lookup tables; ``rules`` lists the matchers in
    the order they are tried. The terminal fallback is always Unsupported.
    """

    # Base type name -> bit width
    INTEGER_WIDTHS: Dict[str, int] = {}
    DECIMAL_NAMES: frozenset = frozenset()
    # Base type names whose first modifier is a character length
    STRING_NAMES: frozenset = frozenset()
    # Remaining base type name -> family
    FAMILIES: Dict[str, TypeFamily] = {}

    def fold_identifier(self, name: str) -> str:
        return name.lower()

    def rules(self) -> List[Rule]:
        return [
            self._match_enum,
            self._match_integer,
            self._match_decimal,
            self._match_string,
            self._match_lookup,
        ]

    def normalize(
        self,
        native_type: str,
        enums: Optional[Mapping[str, EnumDefinition]] = None,
        enum_name: Optional[str] = None,
        schema: Optional[str] = None,
    ) -> ColumnType:
        """Normalize a native type string.

        Args:
            native_type: The type as the catalog spells it
            enums: Loaded enums keyed by folded name
            enum_name: Enum name assigned by the backend for inline enums
            schema: Schema being described

        Returns:
            ColumnType; Unsupported when no rule recognizes the type
        """
        context = MappingContext(enums=enums or {}, enum_name=enum_name, schema=schema)
        parsed = parse_native_type(native_type or "")

        for rule in self.rules():
            column_type = rule(parsed, context)
            if column_type is not None:
                if parsed.is_array and column_type.family is not TypeFamily.UNSUPPORTED:
                    column_type = replace(column_type, is_array=True)
                return replace(column_type, native_type=native_type)

        logger.debug("No type rule matched '%s', treating as unsupported", native_type)
        return ColumnType(family=TypeFamily.UNSUPPORTED, native_type=native_type, is_array=parsed.is_array)

    def _lookup_enum(self, name: str, context: MappingContext) -> Optional[EnumDefinition]:
        enum = context.enums.get(self.fold_identifier(name))
        # An enum without labels cannot back a valid Enum column
        if enum is not None and enum.variants:
            return enum
        return None

    def _match_enum(self, native: NativeType, context: MappingContext) -> Optional[ColumnType]:
        if native.args:
            return None
        qualifier, name = split_qualified_identifier(_strip_array(native.raw))
        if (
            qualifier is not None
            and context.schema is not None
            and self.fold_identifier(qualifier) != self.fold_identifier(context.schema)
        ):
            return None
        enum = self._lookup_enum(name, context)
        if enum is None:
            return None
        return ColumnType(family=TypeFamily.ENUM, native_type=native.raw, enum_name=enum.name)

    def _match_integer(self, native: NativeType, context: MappingContext) -> Optional[ColumnType]:
        width = self.INTEGER_WIDTHS.get(native.base)
        if width is None:
            return None
        if native.is_unsigned:
            width += 1
        family = TypeFamily.BIG_INTEGER if width > BIG_INTEGER_THRESHOLD else TypeFamily.INTEGER
        return ColumnType(family=family, native_type=native.raw)

    def _match_decimal(self, native: NativeType, context: MappingContext) -> Optional[ColumnType]:
        if native.base not in self.DECIMAL_NAMES:
            return None
        return ColumnType(
            family=TypeFamily.DECIMAL,
            native_type=native.raw,
            precision=native.int_arg(0),
            scale=native.int_arg(1),
        )

    def _match_string(self, native: NativeType, context: MappingContext) -> Optional[ColumnType]:
        if native.base not in self.STRING_NAMES:
            return None
        return ColumnType(family=TypeFamily.STRING, native_type=native.raw, length=native.int_arg(0))

    def _match_lookup(self, native: NativeType, context: MappingContext) -> Optional[ColumnType]:
        family = self.FAMILIES.get(native.base)
        if family is None:
            return None
        return ColumnType(family=family, native_type=native.raw)


def _strip_array(text: str) -> str:
    return _ARRAY_SUFFIX_RE.sub("", text.strip())


class PostgresTypeMapper(TypeMapper):
    """Type mapper for PostgreSQL ``format_type`` output."""

    INTEGER_WIDTHS = {
        "smallint": 16,
        "integer": 32,
        "bigint": 64,
        "int2": 16,
        "int4": 32,
        "int8": 64,
        "int": 32,
        "smallserial": 16,
        "serial": 32,
        "bigserial": 64,
    }
    DECIMAL_NAMES = frozenset({"numeric", "decimal", "money"})
    STRING_NAMES = frozenset({
        "character varying",
        "varchar",
        "character",
        "char",
        "bpchar",
        '"char"',
    })
    FAMILIES = {
        "real": TypeFamily.FLOAT,
        "double precision": TypeFamily.FLOAT,
        "float4": TypeFamily.FLOAT,
        "float8": TypeFamily.FLOAT,
        "boolean": TypeFamily.BOOLEAN,
        "bool": TypeFamily.BOOLEAN,
        "text": TypeFamily.TEXT,
        "citext": TypeFamily.TEXT,
        "name": TypeFamily.STRING,
        "bytea": TypeFamily.BINARY,
        "date": TypeFamily.DATE,
        "time": TypeFamily.TIME,
        "time without time zone": TypeFamily.TIME,
        "time with time zone": TypeFamily.TIME,
        "timetz": TypeFamily.TIME,
        "timestamp": TypeFamily.DATETIME,
        "timestamp without time zone": TypeFamily.DATETIME,
        "timestamp with time zone": TypeFamily.DATETIME,
        "timestamptz": TypeFamily.DATETIME,
        "json": TypeFamily.JSON,
        "jsonb": TypeFamily.JSON,
        "uuid": TypeFamily.UUID,
    }

    def fold_identifier(self, name: str) -> str:
        # Catalog names are stored exactly as created
        return name


class MySQLTypeMapper(TypeMapper):
    """Type mapper for MySQL / MariaDB ``COLUMN_TYPE`` values."""

    INTEGER_WIDTHS = {
        "tinyint": 8,
        "smallint": 16,
        "mediumint": 24,
        "int": 32,
        "integer": 32,
        "bigint": 64,
        "serial": 65,
    }
    DECIMAL_NAMES = frozenset({"decimal", "numeric", "dec", "fixed"})
    STRING_NAMES = frozenset({"char", "varchar", "national char", "national varchar", "nchar", "nvarchar"})
    FAMILIES = {
        "float": TypeFamily.FLOAT,
        "double": TypeFamily.FLOAT,
        "double precision": TypeFamily.FLOAT,
        "real": TypeFamily.FLOAT,
        "bool": TypeFamily.BOOLEAN,
        "boolean": TypeFamily.BOOLEAN,
        "tinytext": TypeFamily.TEXT,
        "text": TypeFamily.TEXT,
        "mediumtext": TypeFamily.TEXT,
        "longtext": TypeFamily.TEXT,
        "binary": TypeFamily.BINARY,
        "varbinary": TypeFamily.BINARY,
        "tinyblob": TypeFamily.BINARY,
        "blob": TypeFamily.BINARY,
        "mediumblob": TypeFamily.BINARY,
        "longblob": TypeFamily.BINARY,
        "date": TypeFamily.DATE,
        "time": TypeFamily.TIME,
        "datetime": TypeFamily.DATETIME,
        "timestamp": TypeFamily.DATETIME,
        "year": TypeFamily.INTEGER,
        "json": TypeFamily.JSON,
    }

    def rules(self) -> List[Rule]:
        return [self._match_inline_enum, self._match_boolean] + super().rules()[1:]

    def _match_inline_enum(self, native: NativeType, context: MappingContext) -> Optional[ColumnType]:
        if native.base != "enum" or context.enum_name is None:
            return None
        enum = self._lookup_enum(context.enum_name, context)
        if enum is None:
            return None
        return ColumnType(family=TypeFamily.ENUM, native_type=native.raw, enum_name=enum.name)

    def _match_boolean(self, native: NativeType, context: MappingContext) -> Optional[ColumnType]:
        # MySQL spells BOOLEAN as tinyint(1)
        if native.base == "tinyint" and native.int_arg(0) == 1 and not native.is_unsigned:
            return ColumnType(family=TypeFamily.BOOLEAN, native_type=native.raw)
        return None


class SQLiteTypeMapper(TypeMapper):
    """Type mapper for SQLite declared column types.

    SQLite types values individually; the declared type of the column is
    what gets normalized here.
    """

    INTEGER_WIDTHS = {
        "int": 32,
        "integer": 32,
        "tinyint": 8,
        "smallint": 16,
        "mediumint": 24,
        "serial": 32,
        "int2": 16,
        "int4": 32,
        "int8": 64,
        "bigint": 64,
        "big int": 64,
    }
    DECIMAL_NAMES = frozenset({"numeric", "decimal"})
    STRING_NAMES = frozenset({
        "varchar",
        "character varying",
        "char",
        "character",
        "nchar",
        "nvarchar",
        "varying character",
        "native character",
    })
    FAMILIES = {
        "real": TypeFamily.FLOAT,
        "float": TypeFamily.FLOAT,
        "double": TypeFamily.FLOAT,
        "double precision": TypeFamily.FLOAT,
        "boolean": TypeFamily.BOOLEAN,
        "bool": TypeFamily.BOOLEAN,
        "text": TypeFamily.TEXT,
        "clob": TypeFamily.TEXT,
        "blob": TypeFamily.BINARY,
        "binary": TypeFamily.BINARY,
        "date": TypeFamily.DATE,
        "time": TypeFamily.TIME,
        "datetime": TypeFamily.DATETIME,
        "timestamp": TypeFamily.DATETIME,
        "json": TypeFamily.JSON,
        "uuid": TypeFamily.UUID,
    }


class DuckDBTypeMapper(TypeMapper):
    """Type mapper for DuckDB ``data_type`` values."""

    INTEGER_WIDTHS = {
        "tinyint": 8,
        "int1": 8,
        "smallint": 16,
        "int2": 16,
        "short": 16,
        "integer": 32,
        "int": 32,
        "int4": 32,
        "bigint": 64,
        "int8": 64,
        "long": 64,
        "hugeint": 128,
        "utinyint": 9,
        "usmallint": 17,
        "uinteger": 33,
        "ubigint": 65,
        "uhugeint": 129,
    }
    DECIMAL_NAMES = frozenset({"decimal", "numeric"})
    STRING_NAMES = frozenset({"varchar", "char", "bpchar", "string", "text"})
    FAMILIES = {
        "float": TypeFamily.FLOAT,
        "float4": TypeFamily.FLOAT,
        "real": TypeFamily.FLOAT,
        "double": TypeFamily.FLOAT,
        "float8": TypeFamily.FLOAT,
        "boolean": TypeFamily.BOOLEAN,
        "bool": TypeFamily.BOOLEAN,
        "blob": TypeFamily.BINARY,
        "bytea": TypeFamily.BINARY,
        "varbinary": TypeFamily.BINARY,
        "date": TypeFamily.DATE,
        "time": TypeFamily.TIME,
        "timestamp": TypeFamily.DATETIME,
        "datetime": TypeFamily.DATETIME,
        "timestamp with time zone": TypeFamily.DATETIME,
        "timestamptz": TypeFamily.DATETIME,
        "timestamp_s": TypeFamily.DATETIME,
        "timestamp_ms": TypeFamily.DATETIME,
        "timestamp_ns": TypeFamily.DATETIME,
        "json": TypeFamily.JSON,
        "uuid": TypeFamily.UUID,
    }

    def rules(self) -> List[Rule]:
        return [self._match_inline_enum] + super().rules()

    def _match_inline_enum(self, native: NativeType, context: MappingContext) -> Optional[ColumnType]:
        """Resolve ``ENUM('a', 'b')`` to the one named enum with exactly those labels."""
        if native.base != "enum":
            return None
        labels = tuple(parse_quoted_labels(native.args))
        matches = [enum for enum in context.enums.values() if enum.variants == labels]
        if len(matches) != 1 or not labels:
            return None
        return ColumnType(family=TypeFamily.ENUM, native_type=native.raw, enum_name=matches[0].name)
