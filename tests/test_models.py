"""Tests for the schema model."""

import dataclasses

import pytest

from schema_describer.models import (
    Column,
    ColumnType,
    DefaultKind,
    DefaultValue,
    EnumDefinition,
    Index,
    Schema,
    SchemaMetadata,
    Sequence,
    Table,
    TypeFamily,
)


def _table():
    return Table(
        name="users",
        columns=(
            Column(name="id", column_type=ColumnType(TypeFamily.INTEGER, "integer"), is_nullable=False),
            Column(name="email", column_type=ColumnType(TypeFamily.STRING, "varchar(255)", length=255)),
        ),
        indexes=(
            Index(name="users_email_idx", columns=("email",)),
            Index(name="users_pkey", columns=("id",), is_unique=True, is_primary_key=True),
        ),
    )


class TestTypeFamily:
    """Tests for type family groupings."""

    def test_numeric_families(self):
        """Test which families count as numeric."""
        assert TypeFamily.INTEGER.is_numeric
        assert TypeFamily.BIG_INTEGER.is_numeric
        assert TypeFamily.DECIMAL.is_numeric
        assert not TypeFamily.STRING.is_numeric

    def test_temporal_families(self):
        """Test which families count as temporal."""
        assert TypeFamily.DATETIME.is_temporal
        assert TypeFamily.DATE.is_temporal
        assert not TypeFamily.TEXT.is_temporal


class TestDefaultValue:
    """Tests for DefaultValue constructors."""

    def test_literal(self):
        """Test literal default carries its value."""
        default = DefaultValue.literal(5)
        assert default.kind is DefaultKind.LITERAL
        assert default.is_literal
        assert default.value == 5

    def test_sequence_next(self):
        """Test sequence default carries the sequence name."""
        default = DefaultValue.sequence_next("users_id_seq")
        assert default.is_sequence_next
        assert default.sequence_name == "users_id_seq"

    def test_expression_keeps_text(self):
        """Test expression default keeps the raw text."""
        default = DefaultValue.expression("gen_random_uuid()")
        assert default.is_expression
        assert default.expression_text == "gen_random_uuid()"

    def test_markers_are_equal(self):
        """Test now and null defaults compare structurally."""
        assert DefaultValue.now() == DefaultValue.now()
        assert DefaultValue.null().is_null
        assert DefaultValue.now() != DefaultValue.null()


class TestTable:
    """Tests for Table lookups."""

    def test_primary_key(self):
        """Test the primary key is found among the indexes."""
        assert _table().primary_key.name == "users_pkey"

    def test_no_primary_key(self):
        """Test a table without a primary key."""
        assert Table(name="log").primary_key is None

    def test_column_lookup(self):
        """Test finding columns by name."""
        table = _table()
        assert table.column_names == ("id", "email")
        assert table.get_column("email").column_type.length == 255
        assert table.get_column("missing") is None

    def test_index_lookup(self):
        """Test finding indexes by name."""
        assert _table().get_index("users_email_idx").columns == ("email",)

    def test_frozen(self):
        """Test model instances cannot be mutated."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            _table().name = "other"


class TestSchema:
    """Tests for Schema lookups."""

    def test_lookups(self):
        """Test finding tables, enums and sequences by name."""
        schema = Schema(
            name="public",
            engine="postgres",
            tables=(_table(),),
            enums=(EnumDefinition(name="mood", variants=("sad", "happy")),),
            sequences=(Sequence(name="users_id_seq", start_value=1),),
        )

        assert schema.table_names == ("users",)
        assert schema.get_table("users") is not None
        assert schema.get_enum("mood").variants == ("sad", "happy")
        assert schema.get_sequence("users_id_seq").start_value == 1
        assert schema.get_table("orders") is None

    def test_structural_equality(self):
        """Test two schemas built from the same facts are equal."""
        assert Schema(name="main", engine="sqlite", tables=(_table(),)) == Schema(
            name="main", engine="sqlite", tables=(_table(),)
        )


class TestSchemaMetadata:
    """Tests for SchemaMetadata."""

    @pytest.mark.parametrize("version,expected", [
        ("10.11.2-MariaDB-1:10.11.2+maria~ubu2204", True),
        ("8.0.36", False),
        (None, False),
    ])
    def test_is_mariadb(self, version, expected):
        """Test MariaDB detection from the version string."""
        metadata = SchemaMetadata(schema_name="shop", engine="mysql", table_count=0, size_in_bytes=0, version=version)
        assert metadata.is_mariadb is expected
