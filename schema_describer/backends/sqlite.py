"""SQLite catalog backend."""

import logging
import re
from typing import Any, Dict, List, Optional

from ..defaults import DefaultValueParser, SQLiteDefaultParser
from ..engines import EngineFamily
from ..type_mappers import SQLiteTypeMapper, TypeMapper
from .base import CatalogBackend, group_rows, quote_identifier
from .raw import RawColumn, RawEnum, RawForeignKey, RawIndex, RawSequence, RawTable

logger = logging.getLogger(__name__)

_WITHOUT_ROWID_RE = re.compile(r"\bWITHOUT\s+ROWID\b", re.IGNORECASE)


def find_check_enum(table_sql: Optional[str], column: str) -> Optional[str]:
    """Find a ``CHECK (column IN (...))`` constraint on a column in a table's DDL.

    Returns:
        The constraint text as written, or None
    """
    if not table_sql:
        return None
    name = re.escape(column)
    pattern = re.compile(
        r"CHECK\s*\(\s*(?:\"" + name + r"\"|`" + name + r"`|\[" + name + r"\]|" + name + r")"
        r"\s+IN\s*\((?:[^()']|'(?:[^']|'')*')*\)\s*\)",
        re.IGNORECASE,
    )
    match = pattern.search(table_sql)
    return match.group(0) if match else None


def is_without_rowid(table_sql: Optional[str]) -> bool:
    """Whether a table's DDL declares it WITHOUT ROWID (after the column list)."""
    if not table_sql:
        return False
    return bool(_WITHOUT_ROWID_RE.search(table_sql[table_sql.rfind(")") + 1:]))


class SQLiteBackend(CatalogBackend):
    """Reads sqlite_master and the table PRAGMAs of a SQLite database.

    The schema name is the attached database name, ``main`` for the
    primary database file.
    """

    engine = EngineFamily.SQLITE.value

    def type_mapper(self) -> TypeMapper:
        return SQLiteTypeMapper()

    def default_parser(self) -> DefaultValueParser:
        return SQLiteDefaultParser()

    def _master_rows(self, schema: str) -> List[Dict[str, Any]]:
        return self._query(f"""
            SELECT name, sql
            FROM {quote_identifier(schema)}.sqlite_master
            WHERE type = 'table'
              AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'
            ORDER BY name
        """)

    def _pragma(self, schema: str, pragma: str, argument: str) -> List[Dict[str, Any]]:
        return self._query(f"PRAGMA {quote_identifier(schema)}.{pragma}({self._literal(argument)})")

    def list_table_names(self, schema: str) -> List[str]:
        return [self._required(row, "name", f"table in schema '{schema}'") for row in self._master_rows(schema)]

    def load_tables(self, schema: str) -> List[RawTable]:
        tables = []
        for master in self._master_rows(schema):
            table_name = self._required(master, "name", f"table in schema '{schema}'")
            table_sql = master.get("sql")
            rows = self._pragma(schema, "table_info", table_name)
            pk_rows = [row for row in rows if (self._as_int(row.get("pk")) or 0) > 0]

            without_rowid = is_without_rowid(table_sql)
            pk_names = {row.get("name") for row in pk_rows}

            # A lone INTEGER primary key aliases the rowid, which AUTOINCREMENT requires
            rowid_alias = None
            if (
                not without_rowid
                and len(pk_rows) == 1
                and (pk_rows[0].get("type") or "").strip().upper() == "INTEGER"
            ):
                rowid_alias = pk_rows[0].get("name")

            table = RawTable(name=table_name)
            for row in rows:
                column_name = self._required(row, "name", f"column of table '{table_name}'", table_name)
                declared = row.get("type") or ""
                check = find_check_enum(table_sql, column_name)
                # WITHOUT ROWID tables enforce NOT NULL on every key column
                not_null = (
                    self._as_bool(row.get("notnull"))
                    or column_name == rowid_alias
                    or (without_rowid and column_name in pk_names)
                )
                table.columns.append(RawColumn(
                    table=table_name,
                    name=column_name,
                    native_type=check if check else declared,
                    is_nullable=not not_null,
                    default=row.get("dflt_value"),
                    is_identity=column_name == rowid_alias,
                ))
            tables.append(table)
        return tables

    def load_indexes(self, schema: str) -> List[RawIndex]:
        indexes = []
        for table_name in self.list_table_names(schema):
            index_rows = self._pragma(schema, "index_list", table_name)

            primary_key = self._primary_key(schema, table_name, index_rows)
            if primary_key is not None:
                indexes.append(primary_key)

            for index_row in index_rows:
                index_name = self._required(index_row, "name", f"index of table '{table_name}'", table_name)
                if index_row.get("origin") == "pk":
                    continue
                info = sorted(self._pragma(schema, "index_info", index_name), key=lambda row: self._as_int(row.get("seqno")) or 0)
                # Expression key parts have no column name
                if any(row.get("name") is None for row in info):
                    logger.warning("Skipping expression index '%s' on table '%s'", index_name, table_name)
                    continue
                indexes.append(RawIndex(
                    table=table_name,
                    name=index_name,
                    columns=[row["name"] for row in info],
                    is_unique=self._as_bool(index_row.get("unique")),
                ))
        return indexes

    def _primary_key(self, schema: str, table_name: str, index_rows: List[Dict[str, Any]]) -> Optional[RawIndex]:
        """Build the primary key from table_info's pk ordinals."""
        rows = self._pragma(schema, "table_info", table_name)
        pk_rows = sorted(
            (row for row in rows if (self._as_int(row.get("pk")) or 0) > 0),
            key=lambda row: self._as_int(row.get("pk")),
        )
        if not pk_rows:
            return None
        names = [row.get("name") for row in index_rows if row.get("origin") == "pk"]
        return RawIndex(
            table=table_name,
            name=names[0] if names else f"{table_name}_pkey",
            columns=[row["name"] for row in pk_rows],
            is_unique=True,
            is_primary_key=True,
        )

    def load_foreign_keys(self, schema: str) -> List[RawForeignKey]:
        foreign_keys = []
        for table_name in self.list_table_names(schema):
            rows = self._pragma(schema, "foreign_key_list", table_name)
            for group in group_rows(rows, "id").values():
                group.sort(key=lambda row: self._as_int(row.get("seq")) or 0)
                first = group[0]
                object_name = f"foreign key #{first.get('id')}"
                # A constraint naming only the parent table targets its primary key
                referenced = [row.get("to") for row in group]
                foreign_keys.append(RawForeignKey(
                    table=table_name,
                    constraint_name=None,
                    columns=[self._required(row, "from", object_name, table_name) for row in group],
                    referenced_table=self._required(first, "table", object_name, table_name),
                    referenced_columns=[] if all(name is None for name in referenced) else referenced,
                    on_delete=self._parse_action(first.get("on_delete"), table_name, object_name),
                    on_update=self._parse_action(first.get("on_update"), table_name, object_name),
                ))
        return foreign_keys

    def load_enums(self, schema: str) -> List[RawEnum]:
        return []

    def load_sequences(self, schema: str) -> List[RawSequence]:
        return []

    def list_schemas(self) -> List[str]:
        result = self._query("PRAGMA database_list")
        return [row["name"] for row in result if row.get("name") != "temp"]

    def get_size(self, schema: str) -> int:
        page_count = self._query(f"PRAGMA {quote_identifier(schema)}.page_count")
        page_size = self._query(f"PRAGMA {quote_identifier(schema)}.page_size")
        if not page_count or not page_size:
            return 0
        return (self._as_int(page_count[0].get("page_count")) or 0) * (self._as_int(page_size[0].get("page_size")) or 0)

    def get_version(self) -> Optional[str]:
        result = self._query("SELECT sqlite_version() AS version")
        return result[0].get("version") if result else None
