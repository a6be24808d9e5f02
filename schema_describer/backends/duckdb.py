"""DuckDB catalog backend."""

import logging
import re
from typing import Any, Dict, List, Optional

from ..defaults import DefaultValueParser, DuckDBDefaultParser
from ..engines import EngineFamily
from ..errors import CatalogError
from ..models import ForeignKeyAction
from ..type_mappers import DuckDBTypeMapper, TypeMapper, split_arguments, unquote_identifier
from .base import CatalogBackend
from .raw import RawColumn, RawEnum, RawForeignKey, RawIndex, RawSequence, RawTable

logger = logging.getLogger(__name__)

EXCLUDED_SCHEMAS = {"information_schema", "pg_catalog"}

_FOREIGN_KEY_RE = re.compile(
    r"FOREIGN\s+KEY\s*\((?P<columns>[^)]*)\)\s*REFERENCES\s+(?P<table>(?:\"(?:[^\"]|\"\")*\"|[^\s(])+)\s*"
    r"(?:\((?P<referenced>[^)]*)\))?",
    re.IGNORECASE,
)
_INDEX_COLUMNS_RE = re.compile(r"\bON\s+(?:\"(?:[^\"]|\"\")*\"|[^\s(])+\s*\((?P<columns>.*)\)\s*;?\s*$", re.IGNORECASE | re.DOTALL)
_PLAIN_IDENTIFIER_RE = re.compile(r'^(?:"(?:[^"]|"")+"|[A-Za-z_][A-Za-z0-9_$]*)$')


def _names(value: Any) -> List[str]:
    """Read a list column that may arrive as a Python list or as ``[a, b]`` text."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    text = str(value).strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    return [unquote_identifier(part) for part in split_arguments(text) if part]


class DuckDBBackend(CatalogBackend):
    """Reads the duckdb_* catalog functions of a DuckDB database."""

    engine = EngineFamily.DUCKDB.value

    def type_mapper(self) -> TypeMapper:
        return DuckDBTypeMapper()

    def default_parser(self) -> DefaultValueParser:
        return DuckDBDefaultParser()

    def list_table_names(self, schema: str) -> List[str]:
        result = self._query(f"""
            SELECT table_name
            FROM duckdb_tables()
            WHERE schema_name = {self._literal(schema)}
              AND database_name = current_database()
              AND NOT internal
            ORDER BY table_name
        """)
        return [self._required(row, "table_name", f"table in schema '{schema}'") for row in result]

    def load_tables(self, schema: str) -> List[RawTable]:
        tables = {name: RawTable(name=name) for name in self.list_table_names(schema)}

        result = self._query(f"""
            SELECT
                table_name,
                column_name,
                data_type,
                is_nullable,
                column_default
            FROM duckdb_columns()
            WHERE schema_name = {self._literal(schema)}
              AND database_name = current_database()
            ORDER BY table_name, column_index
        """)

        for row in result:
            table_name = self._required(row, "table_name", f"column in schema '{schema}'")
            table = tables.get(table_name)
            if table is None:
                continue
            column_name = self._required(row, "column_name", f"column of table '{table_name}'", table_name)
            table.columns.append(RawColumn(
                table=table_name,
                name=column_name,
                native_type=self._required(row, "data_type", f"column '{table_name}.{column_name}'", table_name),
                is_nullable=self._as_bool(row.get("is_nullable")),
                default=row.get("column_default"),
            ))

        return list(tables.values())

    def _constraints(self, schema: str, constraint_types: str) -> List[Dict[str, Any]]:
        return self._query(f"""
            SELECT
                table_name,
                constraint_index,
                constraint_type,
                constraint_text,
                constraint_column_names
            FROM duckdb_constraints()
            WHERE schema_name = {self._literal(schema)}
              AND database_name = current_database()
              AND constraint_type IN ({constraint_types})
            ORDER BY table_name, constraint_index
        """)

    def load_indexes(self, schema: str) -> List[RawIndex]:
        indexes = []

        # Key constraints are not listed by duckdb_indexes()
        for row in self._constraints(schema, "'PRIMARY KEY', 'UNIQUE'"):
            table_name = self._required(row, "table_name", f"constraint in schema '{schema}'")
            columns = _names(self._required(row, "constraint_column_names", f"key constraint of table '{table_name}'", table_name))
            is_primary_key = row.get("constraint_type") == "PRIMARY KEY"
            indexes.append(RawIndex(
                table=table_name,
                name=f"{table_name}_pkey" if is_primary_key else f"{table_name}_{'_'.join(columns)}_key",
                columns=columns,
                is_unique=True,
                is_primary_key=is_primary_key,
            ))

        result = self._query(f"""
            SELECT index_name, table_name, is_unique, sql
            FROM duckdb_indexes()
            WHERE schema_name = {self._literal(schema)}
              AND database_name = current_database()
            ORDER BY table_name, index_name
        """)
        for row in result:
            table_name = self._required(row, "table_name", f"index in schema '{schema}'")
            index_name = self._required(row, "index_name", f"index of table '{table_name}'", table_name)
            columns = self._index_columns(row.get("sql"))
            if columns is None:
                logger.warning("Skipping expression index '%s' on table '%s'", index_name, table_name)
                continue
            indexes.append(RawIndex(
                table=table_name,
                name=index_name,
                columns=columns,
                is_unique=self._as_bool(row.get("is_unique")),
            ))
        return indexes

    @staticmethod
    def _index_columns(sql: Optional[str]) -> Optional[List[str]]:
        """Read key columns from CREATE INDEX text; None when a key part is an expression."""
        match = _INDEX_COLUMNS_RE.search(sql or "")
        if not match:
            return None
        parts = split_arguments(match.group("columns"))
        if not parts or not all(_PLAIN_IDENTIFIER_RE.match(part) for part in parts):
            return None
        return [unquote_identifier(part) for part in parts]

    def load_foreign_keys(self, schema: str) -> List[RawForeignKey]:
        foreign_keys = []
        seen = set()
        for row in self._constraints(schema, "'FOREIGN KEY'"):
            table_name = self._required(row, "table_name", f"foreign key in schema '{schema}'")
            text = self._required(row, "constraint_text", f"foreign key of table '{table_name}'", table_name)
            if (table_name, text) in seen:
                continue
            seen.add((table_name, text))

            match = _FOREIGN_KEY_RE.search(text)
            if not match:
                raise CatalogError(
                    f"Cannot read foreign key definition '{text}' of table '{table_name}'",
                    table=table_name,
                    details={"constraint_text": text},
                )
            columns = _names(match.group("columns"))
            foreign_keys.append(RawForeignKey(
                table=table_name,
                constraint_name=None,
                columns=columns,
                referenced_table=unquote_identifier(match.group("table")),
                referenced_columns=_names(match.group("referenced")),
                # DuckDB does not support referential actions
                on_delete=ForeignKeyAction.NO_ACTION,
                on_update=ForeignKeyAction.NO_ACTION,
            ))
        return foreign_keys

    def load_enums(self, schema: str) -> List[RawEnum]:
        result = self._query(f"""
            SELECT type_name, labels
            FROM duckdb_types()
            WHERE schema_name = {self._literal(schema)}
              AND database_name = current_database()
              AND logical_type = 'ENUM'
              AND NOT internal
            ORDER BY type_name
        """)
        return [
            RawEnum(
                name=self._required(row, "type_name", f"enum in schema '{schema}'"),
                labels=_names(row.get("labels")),
            )
            for row in result
        ]

    def load_sequences(self, schema: str) -> List[RawSequence]:
        result = self._query(f"""
            SELECT sequence_name, start_value, last_value, increment_by
            FROM duckdb_sequences()
            WHERE schema_name = {self._literal(schema)}
              AND database_name = current_database()
            ORDER BY sequence_name
        """)
        return [
            RawSequence(
                name=self._required(row, "sequence_name", f"sequence in schema '{schema}'"),
                start_value=self._as_int(row.get("start_value")),
                current_value=self._as_int(row.get("last_value")),
                increment=self._as_int(row.get("increment_by")),
            )
            for row in result
        ]

    def list_schemas(self) -> List[str]:
        result = self._query("""
            SELECT schema_name
            FROM information_schema.schemata
            WHERE catalog_name = current_database()
            ORDER BY schema_name
        """)
        schemas = [row["schema_name"] for row in result]
        return [s for s in schemas if s.lower() not in EXCLUDED_SCHEMAS]

    def get_size(self, schema: str) -> int:
        # DuckDB reports storage per database file, not per schema
        result = self._query("""
            SELECT block_size * total_blocks AS size
            FROM pragma_database_size()
            WHERE database_name = current_database()
        """)
        if not result:
            return 0
        return self._as_int(result[0].get("size")) or 0

    def get_version(self) -> Optional[str]:
        result = self._query("SELECT version() AS version")
        return result[0].get("version") if result else None
