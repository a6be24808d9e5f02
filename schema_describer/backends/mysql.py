"""MySQL and MariaDB catalog backend."""

import logging
import re
from typing import List, Optional

from ..defaults import DefaultValueParser, MySQLDefaultParser
from ..engines import EngineFamily
from ..models import is_mariadb_version
from ..type_mappers import MySQLTypeMapper, TypeMapper, parse_native_type, parse_quoted_labels
from .base import CatalogBackend, group_rows
from .raw import RawColumn, RawEnum, RawForeignKey, RawIndex, RawSequence, RawTable

logger = logging.getLogger(__name__)

EXCLUDED_SCHEMAS = ("information_schema", "mysql", "performance_schema", "sys")

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def inline_enum_name(table: str, column: str) -> str:
    """Name given to the enum synthesized from an inline ``enum(...)`` column."""
    return f"{table}_{column}"


def _is_unquoted_expression(default: Optional[str]) -> bool:
    """Whether a MariaDB default is neither a quoted string, NULL nor a bare number."""
    if default is None:
        return False
    text = default.strip()
    return not (text.startswith("'") or text.upper() == "NULL" or _NUMBER_RE.match(text))


class MySQLBackend(CatalogBackend):
    """Reads information_schema of a MySQL or MariaDB server.

    A schema here is a database. MySQL has no named enum types, so each
    ``enum(...)`` column contributes one enum named ``{table}_{column}``.
    """

    engine = EngineFamily.MYSQL.value

    def type_mapper(self) -> TypeMapper:
        return MySQLTypeMapper()

    def default_parser(self) -> DefaultValueParser:
        return MySQLDefaultParser()

    def _literal(self, value: str) -> str:
        # Backslash escapes are on by default in MySQL string literals
        return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"

    def list_table_names(self, schema: str) -> List[str]:
        result = self._query(f"""
            SELECT table_name AS table_name
            FROM information_schema.tables
            WHERE table_schema = {self._literal(schema)}
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """)
        return [self._required(row, "table_name", f"table in schema '{schema}'") for row in result]

    def load_tables(self, schema: str) -> List[RawTable]:
        tables = {name: RawTable(name=name) for name in self.list_table_names(schema)}
        # MariaDB quotes string literals and never sets DEFAULT_GENERATED
        mariadb = is_mariadb_version(self.get_version())

        result = self._query(f"""
            SELECT
                table_name AS table_name,
                column_name AS column_name,
                column_type AS column_type,
                is_nullable AS is_nullable,
                column_default AS column_default,
                extra AS extra
            FROM information_schema.columns
            WHERE table_schema = {self._literal(schema)}
            ORDER BY table_name, ordinal_position
        """)

        for row in result:
            table_name = self._required(row, "table_name", f"column in schema '{schema}'")
            table = tables.get(table_name)
            if table is None:
                continue
            column_name = self._required(row, "column_name", f"column of table '{table_name}'", table_name)
            column_type = self._required(row, "column_type", f"column '{table_name}.{column_name}'", table_name)
            extra = (row.get("extra") or "").lower()
            table.columns.append(RawColumn(
                table=table_name,
                name=column_name,
                native_type=column_type,
                is_nullable=self._as_bool(row.get("is_nullable")),
                default=row.get("column_default"),
                default_is_expression=(
                    "default_generated" in extra
                    or (mariadb and _is_unquoted_expression(row.get("column_default")))
                ),
                is_identity="auto_increment" in extra,
                enum_name=inline_enum_name(table_name, column_name) if parse_native_type(column_type).base == "enum" else None,
            ))

        return list(tables.values())

    def load_indexes(self, schema: str) -> List[RawIndex]:
        result = self._query(f"""
            SELECT
                table_name AS table_name,
                index_name AS index_name,
                column_name AS column_name,
                non_unique AS non_unique,
                seq_in_index AS seq_in_index
            FROM information_schema.statistics
            WHERE table_schema = {self._literal(schema)}
            ORDER BY table_name, index_name, seq_in_index
        """)

        indexes = []
        for rows in group_rows(result, "table_name", "index_name").values():
            first = rows[0]
            table_name = self._required(first, "table_name", f"index in schema '{schema}'")
            index_name = self._required(first, "index_name", f"index of table '{table_name}'", table_name)
            # Functional key parts report no column
            if any(row.get("column_name") is None for row in rows):
                logger.warning("Skipping functional index '%s' on table '%s'", index_name, table_name)
                continue
            indexes.append(RawIndex(
                table=table_name,
                name=index_name,
                columns=[row["column_name"] for row in rows],
                is_unique=self._as_int(first.get("non_unique")) == 0,
                is_primary_key=index_name == "PRIMARY",
            ))
        return indexes

    def load_foreign_keys(self, schema: str) -> List[RawForeignKey]:
        result = self._query(f"""
            SELECT
                kcu.constraint_name AS constraint_name,
                kcu.table_name AS table_name,
                kcu.column_name AS column_name,
                kcu.referenced_table_schema AS referenced_schema,
                kcu.referenced_table_name AS referenced_table,
                kcu.referenced_column_name AS referenced_column,
                rc.delete_rule AS delete_rule,
                rc.update_rule AS update_rule,
                kcu.ordinal_position AS ordinal_position
            FROM information_schema.key_column_usage kcu
            JOIN information_schema.referential_constraints rc
                ON rc.constraint_schema = kcu.constraint_schema
               AND rc.constraint_name = kcu.constraint_name
               AND rc.table_name = kcu.table_name
            WHERE kcu.table_schema = {self._literal(schema)}
              AND kcu.referenced_table_name IS NOT NULL
            ORDER BY kcu.table_name, kcu.constraint_name, kcu.ordinal_position
        """)

        foreign_keys = []
        for rows in group_rows(result, "table_name", "constraint_name").values():
            first = rows[0]
            table_name = self._required(first, "table_name", f"foreign key in schema '{schema}'")
            constraint_name = self._required(first, "constraint_name", f"foreign key of table '{table_name}'", table_name)
            object_name = f"foreign key '{constraint_name}'"
            foreign_keys.append(RawForeignKey(
                table=table_name,
                constraint_name=constraint_name,
                columns=[self._required(row, "column_name", object_name, table_name) for row in rows],
                referenced_schema=first.get("referenced_schema"),
                referenced_table=self._required(first, "referenced_table", object_name, table_name),
                referenced_columns=[self._required(row, "referenced_column", object_name, table_name) for row in rows],
                on_delete=self._parse_action(first.get("delete_rule"), table_name, constraint_name),
                on_update=self._parse_action(first.get("update_rule"), table_name, constraint_name),
            ))
        return foreign_keys

    def load_enums(self, schema: str) -> List[RawEnum]:
        result = self._query(f"""
            SELECT
                table_name AS table_name,
                column_name AS column_name,
                column_type AS column_type
            FROM information_schema.columns
            WHERE table_schema = {self._literal(schema)}
              AND data_type = 'enum'
            ORDER BY table_name, ordinal_position
        """)

        enums = []
        for row in result:
            table_name = self._required(row, "table_name", f"enum column in schema '{schema}'")
            column_name = self._required(row, "column_name", f"enum column of table '{table_name}'", table_name)
            column_type = self._required(row, "column_type", f"column '{table_name}.{column_name}'", table_name)
            enums.append(RawEnum(
                name=inline_enum_name(table_name, column_name),
                labels=parse_quoted_labels(parse_native_type(column_type).args),
            ))
        return enums

    def load_sequences(self, schema: str) -> List[RawSequence]:
        return []

    def list_schemas(self) -> List[str]:
        excluded = ", ".join(self._literal(name) for name in EXCLUDED_SCHEMAS)
        result = self._query(f"""
            SELECT schema_name AS schema_name
            FROM information_schema.schemata
            WHERE schema_name NOT IN ({excluded})
            ORDER BY schema_name
        """)
        return [row["schema_name"] for row in result]

    def get_size(self, schema: str) -> int:
        result = self._query(f"""
            SELECT COALESCE(SUM(data_length + index_length), 0) AS size
            FROM information_schema.tables
            WHERE table_schema = {self._literal(schema)}
        """)
        if not result:
            return 0
        return self._as_int(result[0].get("size")) or 0

    def get_version(self) -> Optional[str]:
        result = self._query("SELECT @@GLOBAL.version AS version")
        return result[0].get("version") if result else None
