"""Database-specific column default parsing.

Recognizers are tried in a fixed order: null marker, current-timestamp
call, sequence-next-value call, typed literal. Text that none of them
accept is kept verbatim as an Expression, so parsing never fails.
"""

import datetime
import json
import logging
import re
import uuid
from abc import ABC
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Mapping, Optional, Pattern

from .models import ColumnType, DefaultValue, EnumDefinition, TypeFamily

logger = logging.getLogger(__name__)

_TRUE_TOKENS = {"true", "t", "1", "yes", "y", "on"}
_FALSE_TOKENS = {"false", "f", "0", "no", "n", "off"}

_QUALIFIED_PART_RE = re.compile(r'"(?:[^"]|"")*"|[^.]+')


@dataclass
class DefaultContext:
    """What a recognizer may consult besides the default text itself."""
    # Folded sequence name -> sequence name as stored in the catalog
    sequences: Mapping[str, str] = field(default_factory=dict)
    enums: Mapping[str, EnumDefinition] = field(default_factory=dict)
    is_expression: bool = False


Recognizer = Callable[[str, ColumnType, DefaultContext], Optional[DefaultValue]]


def strip_outer_parens(text: str) -> str:
    """Remove parentheses that wrap the whole expression: ``((1))`` -> ``1``."""
    text = text.strip()
    while text.startswith("(") and text.endswith(")") and _closing_paren(text, 0) == len(text) - 1:
        text = text[1:-1].strip()
    return text


def _closing_paren(text: str, start: int) -> int:
    depth = 0
    quote: Optional[str] = None
    for position in range(start, len(text)):
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
                return position
    return -1


def _quoted_end(text: str, start: int, backslash_escapes: bool) -> int:
    """Index of the quote closing the literal opened at ``start``, or -1."""
    quote = text[start]
    position = start + 1
    while position < len(text):
        char = text[position]
        if backslash_escapes and char == "\\":
            position += 2
            continue
        if char == quote:
            if position + 1 < len(text) and text[position + 1] == quote:
                position += 2
                continue
            return position
        position += 1
    return -1


_BACKSLASH_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "0": "\0",
    "Z": "\x1a",
}


def unescape_backslashes(text: str) -> str:
    """Resolve C-style backslash escapes (``\\n``, ``\\'``, ``\\\\``)."""
    result: List[str] = []
    position = 0
    while position < len(text):
        char = text[position]
        if char == "\\" and position + 1 < len(text):
            following = text[position + 1]
            result.append(_BACKSLASH_ESCAPES.get(following, following))
            position += 2
        else:
            result.append(char)
            position += 1
    return "".join(result)


class DefaultValueParser(ABC):
    """Base class for engine default parsers.

    Subclasses set the recognizer patterns and may override how string
    literals and casts are spelled in their catalog.
    """

    NULL_PATTERN: Pattern = re.compile(r"^NULL$", re.IGNORECASE)
    NOW_PATTERN: Optional[Pattern] = None
    SEQUENCE_PATTERN: Optional[Pattern] = None
    # Characters that may open a string literal
    STRING_QUOTES = ("'",)

    def fold_identifier(self, name: str) -> str:
        return name.lower()

    def recognizers(self) -> List[Recognizer]:
        return [
            self._recognize_null,
            self._recognize_now,
            self._recognize_sequence,
            self._recognize_literal,
        ]

    def parse(
        self,
        raw: Optional[str],
        column_type: ColumnType,
        context: Optional[DefaultContext] = None,
    ) -> Optional[DefaultValue]:
        """Parse a raw default.

        Args:
            raw: Default text from the catalog; None when the column has no default
            column_type: The column's normalized type
            context: Known sequences and enums

        Returns:
            DefaultValue, or None when the column has no default
        """
        if raw is None:
            return None
        context = context or DefaultContext()
        text = str(raw).strip()

        for recognizer in self.recognizers():
            value = recognizer(text, column_type, context)
            if value is not None:
                return value

        logger.debug("Keeping default %r of %s column as an expression", raw, column_type.native_type)
        return DefaultValue.expression(str(raw))

    # Recognizers

    def _recognize_null(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[DefaultValue]:
        if self.NULL_PATTERN.match(strip_outer_parens(text)):
            return DefaultValue.null()
        return None

    def _recognize_now(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[DefaultValue]:
        if self.NOW_PATTERN is None or not column_type.family.is_temporal:
            return None
        if self.NOW_PATTERN.match(strip_outer_parens(text)):
            return DefaultValue.now()
        return None

    def _recognize_sequence(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[DefaultValue]:
        if self.SEQUENCE_PATTERN is None or not column_type.family.is_numeric:
            return None
        match = self.SEQUENCE_PATTERN.match(strip_outer_parens(text))
        if not match:
            return None
        name = self.sequence_name(match.group("name"))
        known = context.sequences.get(self.fold_identifier(name))
        if known is None:
            logger.debug("Default %r names unknown sequence '%s'", text, name)
            return None
        return DefaultValue.sequence_next(known)

    def _recognize_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[DefaultValue]:
        if column_type.is_array:
            return None
        converter = self._literal_converters().get(column_type.family)
        if converter is None:
            return None
        value = converter(text, column_type, context)
        if value is None:
            return None
        return DefaultValue.literal(value)

    # Literal conversion per family

    def _literal_converters(self):
        return {
            TypeFamily.INTEGER: self._integer_literal,
            TypeFamily.BIG_INTEGER: self._integer_literal,
            TypeFamily.FLOAT: self._float_literal,
            TypeFamily.DECIMAL: self._decimal_literal,
            TypeFamily.BOOLEAN: self._boolean_literal,
            TypeFamily.STRING: self._string_literal,
            TypeFamily.TEXT: self._string_literal,
            TypeFamily.DATE: self._date_literal,
            TypeFamily.TIME: self._time_literal,
            TypeFamily.DATETIME: self._datetime_literal,
            TypeFamily.JSON: self._json_literal,
            TypeFamily.UUID: self._uuid_literal,
            TypeFamily.ENUM: self._enum_literal,
        }

    def _integer_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[int]:
        candidate = self.scalar_text(text, context)
        if candidate is None:
            return None
        try:
            return int(candidate)
        except ValueError:
            return None

    def _float_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[float]:
        candidate = self.scalar_text(text, context)
        if candidate is None:
            return None
        try:
            return float(candidate)
        except ValueError:
            return None

    def _decimal_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[Decimal]:
        candidate = self.scalar_text(text, context)
        if candidate is None:
            return None
        try:
            return Decimal(candidate)
        except InvalidOperation:
            return None

    def _boolean_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[bool]:
        candidate = self.scalar_text(text, context)
        if candidate is None:
            return None
        token = candidate.lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
        return None

    def _string_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[str]:
        return self.string_text(text, context)

    def _date_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[datetime.date]:
        candidate = self.string_text(text, context)
        if candidate is None:
            return None
        try:
            return datetime.date.fromisoformat(candidate.strip())
        except ValueError:
            return None

    def _time_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[datetime.time]:
        candidate = self.string_text(text, context)
        if candidate is None:
            return None
        try:
            return datetime.time.fromisoformat(candidate.strip())
        except ValueError:
            return None

    def _datetime_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[datetime.datetime]:
        candidate = self.string_text(text, context)
        if candidate is None:
            return None
        try:
            return datetime.datetime.fromisoformat(candidate.strip())
        except ValueError:
            return None

    def _json_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Any:
        candidate = self.string_text(text, context)
        if candidate is None:
            return None
        try:
            return json.loads(candidate)
        except ValueError:
            return None

    def _uuid_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[uuid.UUID]:
        candidate = self.string_text(text, context)
        if candidate is None:
            return None
        try:
            return uuid.UUID(candidate.strip())
        except ValueError:
            return None

    def _enum_literal(self, text: str, column_type: ColumnType, context: DefaultContext) -> Optional[str]:
        label = self.string_text(text, context)
        if label is None:
            label = strip_outer_parens(text)
        enum = context.enums.get(self.fold_identifier(column_type.enum_name or ""))
        if enum is None or label not in enum.variants:
            return None
        return label

    # Engine spelling hooks

    def strip_casts(self, text: str) -> str:
        """Remove engine cast syntax around a literal."""
        return text

    def sequence_name(self, reference: str) -> str:
        """Turn the argument of a next-value call into a bare sequence name."""
        parts = _QUALIFIED_PART_RE.findall(reference.replace("''", "'"))
        last = parts[-1].strip() if parts else reference
        if len(last) >= 2 and last.startswith('"') and last.endswith('"'):
            return last[1:-1].replace('""', '"')
        return last

    def unescape(self, body: str, quote: str, prefix: str) -> str:
        """Decode the inside of a quoted string literal."""
        return body.replace(quote + quote, quote)

    def string_text(self, text: str, context: DefaultContext) -> Optional[str]:
        """Return the value of a quoted string literal, or None if ``text`` is not one."""
        core = self.strip_casts(strip_outer_parens(text))
        prefix = ""
        if core[:1] in ("E", "e") and core[1:2] == "'":
            prefix, core = core[0], core[1:]
        if not core or core[0] not in self.STRING_QUOTES:
            return None
        end = _quoted_end(core, 0, backslash_escapes=bool(prefix))
        if end != len(core) - 1:
            return None
        return self.unescape(core[1:-1], core[0], prefix)

    def scalar_text(self, text: str, context: DefaultContext) -> Optional[str]:
        """Return the bare token of a numeric or boolean literal, quoted or not."""
        quoted = self.string_text(text, context)
        if quoted is not None:
            return strip_outer_parens(quoted.strip())
        core = strip_outer_parens(self.strip_casts(strip_outer_parens(text)))
        if not core or any(char.isspace() for char in core):
            return None
        return core


class PostgresDefaultParser(DefaultValueParser):
    """Default parser for PostgreSQL ``column_default`` expressions."""

    NULL_PATTERN = re.compile(r"^NULL(::.+)?$", re.IGNORECASE | re.DOTALL)
    NOW_PATTERN = re.compile(
        r"^(now\(\)|current_timestamp(\(\d+\))?|localtimestamp(\(\d+\))?|current_time(\(\d+\))?|"
        r"localtime(\(\d+\))?|current_date|transaction_timestamp\(\)|statement_timestamp\(\)|clock_timestamp\(\))"
        r"(::[\w\s]+)?$",
        re.IGNORECASE,
    )
    SEQUENCE_PATTERN = re.compile(r"^nextval\('(?P<name>(?:[^']|'')+)'(::regclass)?\)$", re.IGNORECASE)

    _CAST_SUFFIX_RE = re.compile(r'::(?:"[^"]+"|[\w\s.]+)(?:\(\d+(?:,\s*\d+)?\))?(?:\[\])*$')

    def fold_identifier(self, name: str) -> str:
        return name

    def strip_casts(self, text: str) -> str:
        stripped = text.strip()
        while True:
            match = self._CAST_SUFFIX_RE.search(stripped)
            if not match or _inside_quotes(stripped, match.start()):
                return stripped
            stripped = strip_outer_parens(stripped[:match.start()])

    def sequence_name(self, reference: str) -> str:
        parts = _QUALIFIED_PART_RE.findall(reference.replace("''", "'"))
        last = parts[-1].strip() if parts else reference
        if len(last) >= 2 and last.startswith('"') and last.endswith('"'):
            return last[1:-1].replace('""', '"')
        # Unquoted identifiers are folded to lower case by PostgreSQL
        return last.lower()

    def unescape(self, body: str, quote: str, prefix: str) -> str:
        if prefix:
            return unescape_backslashes(body.replace(quote + quote, quote))
        return body.replace(quote + quote, quote)


class MySQLDefaultParser(DefaultValueParser):
    """Default parser for MySQL / MariaDB ``COLUMN_DEFAULT`` values.

    MySQL 8 reports literal defaults unquoted and flags expressions with
    DEFAULT_GENERATED; MariaDB quotes string literals and reports an
    explicit NULL default as the text ``NULL``.
    """

    NOW_PATTERN = re.compile(
        r"^(current_timestamp|now|localtime|localtimestamp)(\(\d*\))?( on update .*)?$",
        re.IGNORECASE,
    )

    def unescape(self, body: str, quote: str, prefix: str) -> str:
        return unescape_backslashes(body.replace(quote + quote, quote))

    def string_text(self, text: str, context: DefaultContext) -> Optional[str]:
        stripped = text.strip()
        if stripped[:1] == "'":
            end = _quoted_end(stripped, 0, backslash_escapes=True)
            if end == len(stripped) - 1:
                return self.unescape(stripped[1:-1], "'", "")
        if context.is_expression:
            return None
        # MySQL 8 stores the literal value itself
        return text


class SQLiteDefaultParser(DefaultValueParser):
    """Default parser for SQLite ``dflt_value`` text (the DDL as written)."""

    NOW_PATTERN = re.compile(
        r"^(current_timestamp|current_date|current_time|"
        r"datetime\(\s*'now'\s*(,\s*'localtime'\s*)?\)|date\(\s*'now'\s*\)|time\(\s*'now'\s*\))$",
        re.IGNORECASE,
    )
    STRING_QUOTES = ("'", '"')


class DuckDBDefaultParser(DefaultValueParser):
    """Default parser for DuckDB ``column_default`` expressions."""

    NULL_PATTERN = re.compile(r"^(NULL|CAST\(NULL AS [^)]+\))$", re.IGNORECASE)
    NOW_PATTERN = re.compile(
        r"^(now\(\)|current_timestamp|get_current_timestamp\(\)|current_date|today\(\))$",
        re.IGNORECASE,
    )
    SEQUENCE_PATTERN = re.compile(r"^nextval\('(?P<name>(?:[^']|'')+)'\)$", re.IGNORECASE)

    _CAST_RE = re.compile(r"^CAST\((?P<value>.*) AS [\w\s(),]+\)$", re.IGNORECASE | re.DOTALL)

    def strip_casts(self, text: str) -> str:
        stripped = text.strip()
        match = self._CAST_RE.match(stripped)
        while match:
            stripped = match.group("value").strip()
            match = self._CAST_RE.match(stripped)
        return stripped


def _inside_quotes(text: str, position: int) -> bool:
    """Whether ``position`` falls inside a single-quoted literal."""
    quote_open = False
    for char in text[:position]:
        if char == "'":
            quote_open = not quote_open
    return quote_open
