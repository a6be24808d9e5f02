"""Tests for column default parsing."""

import datetime
import uuid
from decimal import Decimal

import pytest

from schema_describer.defaults import (
    DefaultContext,
    DuckDBDefaultParser,
    MySQLDefaultParser,
    PostgresDefaultParser,
    SQLiteDefaultParser,
    strip_outer_parens,
    unescape_backslashes,
)
from schema_describer.models import ColumnType, DefaultValue, EnumDefinition, TypeFamily


def _type(family, native="x", **kwargs):
    return ColumnType(family=family, native_type=native, **kwargs)


INTEGER = _type(TypeFamily.INTEGER, "integer")
TEXT = _type(TypeFamily.TEXT, "text")
DATETIME = _type(TypeFamily.DATETIME, "timestamp")


class TestHelpers:
    """Tests for default text helpers."""

    def test_strip_outer_parens(self):
        """Test only parentheses wrapping the whole text are removed."""
        assert strip_outer_parens("((1))") == "1"
        assert strip_outer_parens("(a) + (b)") == "(a) + (b)"
        assert strip_outer_parens("('(')") == "'('"

    def test_unescape_backslashes(self):
        """Test C-style escapes are resolved."""
        assert unescape_backslashes(r"a\nb") == "a\nb"
        assert unescape_backslashes(r"it\'s") == "it's"
        assert unescape_backslashes(r"c:\\dir") == "c:\\dir"


class TestPostgresDefaultParser:
    """Tests for PostgreSQL default parsing."""

    @pytest.fixture
    def parser(self):
        return PostgresDefaultParser()

    @pytest.fixture
    def context(self):
        return DefaultContext(
            sequences={"users_id_seq": "users_id_seq", "Order_Seq": "Order_Seq"},
            enums={"mood": EnumDefinition(name="mood", variants=("sad", "happy"))},
        )

    def test_no_default(self, parser):
        """Test a missing default stays absent."""
        assert parser.parse(None, INTEGER) is None

    def test_nextval(self, parser, context):
        """Test nextval of a known sequence."""
        default = parser.parse("nextval('users_id_seq'::regclass)", INTEGER, context)
        assert default == DefaultValue.sequence_next("users_id_seq")

    def test_nextval_qualified(self, parser, context):
        """Test a schema-qualified sequence reference."""
        default = parser.parse("nextval('public.users_id_seq'::regclass)", INTEGER, context)
        assert default == DefaultValue.sequence_next("users_id_seq")

    def test_nextval_quoted_keeps_case(self, parser, context):
        """Test a quoted sequence name keeps its case."""
        default = parser.parse("""nextval('"Order_Seq"'::regclass)""", INTEGER, context)
        assert default == DefaultValue.sequence_next("Order_Seq")

    def test_nextval_unknown_sequence(self, parser, context):
        """Test nextval of an unknown sequence is kept as an expression."""
        raw = "nextval('other_seq'::regclass)"
        assert parser.parse(raw, INTEGER, context) == DefaultValue.expression(raw)

    def test_now(self, parser):
        """Test current timestamp functions on temporal columns."""
        assert parser.parse("now()", DATETIME).is_now
        assert parser.parse("CURRENT_TIMESTAMP", DATETIME).is_now
        assert parser.parse("('now'::text)::date", _type(TypeFamily.DATE, "date")).is_expression

    def test_now_on_text_column(self, parser):
        """Test now() on a text column is an expression."""
        assert parser.parse("now()", TEXT) == DefaultValue.expression("now()")

    def test_null(self, parser):
        """Test explicit null defaults, with or without a cast."""
        assert parser.parse("NULL", TEXT).is_null
        assert parser.parse("NULL::character varying", TEXT).is_null

    def test_string_with_cast(self, parser):
        """Test a cast string literal."""
        assert parser.parse("'n/a'::text", TEXT) == DefaultValue.literal("n/a")
        assert parser.parse("'it''s'::character varying", TEXT) == DefaultValue.literal("it's")

    def test_escape_string(self, parser):
        """Test E'' strings resolve backslash escapes."""
        assert parser.parse(r"E'line\nbreak'::text", TEXT) == DefaultValue.literal("line\nbreak")

    def test_numbers(self, parser):
        """Test numeric literals, including parenthesized negatives."""
        assert parser.parse("0", INTEGER) == DefaultValue.literal(0)
        assert parser.parse("'-1'::integer", INTEGER) == DefaultValue.literal(-1)
        assert parser.parse("(-5)", INTEGER) == DefaultValue.literal(-5)
        decimal = _type(TypeFamily.DECIMAL, "numeric(10,2)", precision=10, scale=2)
        assert parser.parse("0.00", decimal) == DefaultValue.literal(Decimal("0.00"))

    def test_boolean(self, parser):
        """Test boolean literals."""
        boolean = _type(TypeFamily.BOOLEAN, "boolean")
        assert parser.parse("true", boolean) == DefaultValue.literal(True)
        assert parser.parse("false", boolean) == DefaultValue.literal(False)

    def test_enum_label(self, parser, context):
        """Test an enum default must be one of the labels."""
        mood = _type(TypeFamily.ENUM, "mood", enum_name="mood")
        assert parser.parse("'happy'::mood", mood, context) == DefaultValue.literal("happy")
        assert parser.parse("'angry'::mood", mood, context).is_expression

    def test_typed_literals(self, parser):
        """Test date, json and uuid literals."""
        assert parser.parse("'2024-01-31'::date", _type(TypeFamily.DATE, "date")) == DefaultValue.literal(
            datetime.date(2024, 1, 31)
        )
        assert parser.parse("""'{"a": 1}'::jsonb""", _type(TypeFamily.JSON, "jsonb")) == DefaultValue.literal({"a": 1})
        value = "a0eebc99-9c0b-4ef8-bb6d-6bb9bd380a11"
        assert parser.parse(f"'{value}'::uuid", _type(TypeFamily.UUID, "uuid")) == DefaultValue.literal(uuid.UUID(value))

    def test_array_default_is_expression(self, parser):
        """Test array defaults are kept as expressions."""
        column_type = _type(TypeFamily.TEXT, "text[]", is_array=True)
        assert parser.parse("'{}'::text[]", column_type) == DefaultValue.expression("'{}'::text[]")

    def test_function_call(self, parser):
        """Test arbitrary expressions are kept verbatim."""
        assert parser.parse("gen_random_uuid()", _type(TypeFamily.UUID, "uuid")) == DefaultValue.expression(
            "gen_random_uuid()"
        )


class TestMySQLDefaultParser:
    """Tests for MySQL and MariaDB default parsing."""

    @pytest.fixture
    def parser(self):
        return MySQLDefaultParser()

    def test_mysql8_unquoted_string(self, parser):
        """Test MySQL 8 reports string defaults unquoted."""
        assert parser.parse("hello world", TEXT) == DefaultValue.literal("hello world")

    def test_mariadb_quoted_string(self, parser):
        """Test MariaDB quoted strings are unescaped."""
        assert parser.parse("'hello'", TEXT) == DefaultValue.literal("hello")
        assert parser.parse(r"'it\'s'", TEXT) == DefaultValue.literal("it's")

    def test_generated_expression(self, parser):
        """Test DEFAULT_GENERATED text is an expression."""
        context = DefaultContext(is_expression=True)
        assert parser.parse("(uuid())", TEXT, context) == DefaultValue.expression("(uuid())")

    def test_current_timestamp(self, parser):
        """Test current timestamp spellings."""
        assert parser.parse("CURRENT_TIMESTAMP", DATETIME).is_now
        assert parser.parse("current_timestamp(6)", DATETIME).is_now
        assert parser.parse("now()", DATETIME).is_now

    def test_zero_date(self, parser):
        """Test the zero date cannot be represented and stays an expression."""
        assert parser.parse("0000-00-00 00:00:00", DATETIME).is_expression

    def test_datetime_literal(self, parser):
        """Test a datetime literal."""
        assert parser.parse("2024-01-31 12:00:00", DATETIME) == DefaultValue.literal(
            datetime.datetime(2024, 1, 31, 12, 0, 0)
        )

    def test_mariadb_null(self, parser):
        """Test MariaDB's NULL text."""
        assert parser.parse("NULL", TEXT).is_null

    def test_boolean_tinyint(self, parser):
        """Test tinyint(1) defaults become booleans."""
        assert parser.parse("1", _type(TypeFamily.BOOLEAN, "tinyint(1)")) == DefaultValue.literal(True)


class TestSQLiteDefaultParser:
    """Tests for SQLite default parsing."""

    @pytest.fixture
    def parser(self):
        return SQLiteDefaultParser()

    def test_now_spellings(self, parser):
        """Test SQLite current time spellings."""
        assert parser.parse("CURRENT_TIMESTAMP", DATETIME).is_now
        assert parser.parse("datetime('now')", DATETIME).is_now
        assert parser.parse("datetime('now', 'localtime')", DATETIME).is_now

    def test_double_quoted_string(self, parser):
        """Test double-quoted string defaults."""
        assert parser.parse('"draft"', TEXT) == DefaultValue.literal("draft")

    def test_time_literal(self, parser):
        """Test a time literal."""
        assert parser.parse("'08:30:00'", _type(TypeFamily.TIME, "TIME")) == DefaultValue.literal(datetime.time(8, 30))

    def test_float(self, parser):
        """Test a float literal."""
        assert parser.parse("2.5", _type(TypeFamily.FLOAT, "REAL")) == DefaultValue.literal(2.5)

    def test_unparseable_number(self, parser):
        """Test text that is not a number on an integer column."""
        assert parser.parse("'abc'", INTEGER) == DefaultValue.expression("'abc'")


class TestDuckDBDefaultParser:
    """Tests for DuckDB default parsing."""

    @pytest.fixture
    def parser(self):
        return DuckDBDefaultParser()

    def test_nextval(self, parser):
        """Test nextval of a known sequence."""
        context = DefaultContext(sequences={"serial_id": "serial_id"})
        assert parser.parse("nextval('serial_id')", INTEGER, context) == DefaultValue.sequence_next("serial_id")

    def test_cast_string(self, parser):
        """Test a cast string literal."""
        assert parser.parse("CAST('anon' AS VARCHAR)", TEXT) == DefaultValue.literal("anon")

    def test_cast_null(self, parser):
        """Test a cast null."""
        assert parser.parse("CAST(NULL AS VARCHAR)", TEXT).is_null

    def test_now_spellings(self, parser):
        """Test DuckDB current time spellings."""
        assert parser.parse("now()", DATETIME).is_now
        assert parser.parse("get_current_timestamp()", DATETIME).is_now
        assert parser.parse("today()", _type(TypeFamily.DATE, "DATE")).is_now
