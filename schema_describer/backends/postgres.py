"""PostgreSQL catalog backend."""

from typing import Dict, List, Optional

from ..defaults import DefaultValueParser, PostgresDefaultParser
from ..engines import EngineFamily
from ..models import ForeignKeyAction
from ..type_mappers import PostgresTypeMapper, TypeMapper
from .base import CatalogBackend, group_rows
from .raw import RawColumn, RawEnum, RawForeignKey, RawIndex, RawSequence, RawTable


class PostgresBackend(CatalogBackend):
    """Reads information_schema and pg_catalog of a PostgreSQL database."""

    engine = EngineFamily.POSTGRES.value

    # pg_constraint.confdeltype / confupdtype codes
    ACTION_CODES = {
        "A": ForeignKeyAction.NO_ACTION,
        "R": ForeignKeyAction.RESTRICT,
        "C": ForeignKeyAction.CASCADE,
        "N": ForeignKeyAction.SET_NULL,
        "D": ForeignKeyAction.SET_DEFAULT,
    }

    def type_mapper(self) -> TypeMapper:
        return PostgresTypeMapper()

    def default_parser(self) -> DefaultValueParser:
        return PostgresDefaultParser()

    def fold_identifier(self, name: str) -> str:
        # Catalog names are stored exactly as created; quoting decides case
        return name

    def list_table_names(self, schema: str) -> List[str]:
        result = self._query(f"""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = {self._literal(schema)}
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """)
        return [self._required(row, "table_name", f"table in schema '{schema}'") for row in result]

    def load_tables(self, schema: str) -> List[RawTable]:
        tables = {name: RawTable(name=name) for name in self.list_table_names(schema)}

        result = self._query(f"""
            SELECT
                c.table_name,
                c.column_name,
                pg_catalog.format_type(a.atttypid, a.atttypmod) AS formatted_type,
                c.is_nullable,
                c.column_default,
                c.is_identity
            FROM information_schema.columns c
            JOIN pg_catalog.pg_namespace n ON n.nspname = c.table_schema
            JOIN pg_catalog.pg_class cl ON cl.relnamespace = n.oid AND cl.relname = c.table_name
            JOIN pg_catalog.pg_attribute a ON a.attrelid = cl.oid AND a.attname = c.column_name
            WHERE c.table_schema = {self._literal(schema)}
              AND cl.relkind IN ('r', 'p')
            ORDER BY c.table_name, c.ordinal_position
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
                native_type=self._required(row, "formatted_type", f"column '{table_name}.{column_name}'", table_name),
                is_nullable=self._as_bool(row.get("is_nullable")),
                default=row.get("column_default"),
                is_identity=self._as_bool(row.get("is_identity")),
            ))

        return list(tables.values())

    def load_indexes(self, schema: str) -> List[RawIndex]:
        # Expression indexes have no column to point at and are left out
        result = self._query(f"""
            SELECT
                t.relname AS table_name,
                i.relname AS index_name,
                a.attname AS column_name,
                ix.indisunique AS is_unique,
                ix.indisprimary AS is_primary_key,
                k.ordinality AS column_position
            FROM pg_catalog.pg_index ix
            JOIN pg_catalog.pg_class t ON t.oid = ix.indrelid
            JOIN pg_catalog.pg_class i ON i.oid = ix.indexrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
            CROSS JOIN LATERAL unnest(ix.indkey::int2[]) WITH ORDINALITY AS k(attnum, ordinality)
            JOIN pg_catalog.pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
            WHERE n.nspname = {self._literal(schema)}
              AND t.relkind IN ('r', 'p')
              AND ix.indexprs IS NULL
              AND k.ordinality <= ix.indnkeyatts
            ORDER BY t.relname, i.relname, k.ordinality
        """)

        indexes = []
        for rows in group_rows(result, "table_name", "index_name").values():
            first = rows[0]
            table_name = self._required(first, "table_name", f"index in schema '{schema}'")
            index_name = self._required(first, "index_name", f"index of table '{table_name}'", table_name)
            indexes.append(RawIndex(
                table=table_name,
                name=index_name,
                columns=[self._required(row, "column_name", f"index '{index_name}'", table_name) for row in rows],
                is_unique=self._as_bool(first.get("is_unique")),
                is_primary_key=self._as_bool(first.get("is_primary_key")),
            ))
        return indexes

    def load_foreign_keys(self, schema: str) -> List[RawForeignKey]:
        result = self._query(f"""
            SELECT
                con.conname AS constraint_name,
                cl.relname AS table_name,
                att.attname AS column_name,
                ref_ns.nspname AS referenced_schema,
                ref_cl.relname AS referenced_table,
                ref_att.attname AS referenced_column,
                con.confdeltype AS on_delete,
                con.confupdtype AS on_update,
                cols.position
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class cl ON cl.oid = con.conrelid
            JOIN pg_catalog.pg_namespace ns ON ns.oid = cl.relnamespace
            JOIN pg_catalog.pg_class ref_cl ON ref_cl.oid = con.confrelid
            JOIN pg_catalog.pg_namespace ref_ns ON ref_ns.oid = ref_cl.relnamespace
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS cols(local_attnum, referenced_attnum, position)
            JOIN pg_catalog.pg_attribute att
                ON att.attrelid = con.conrelid AND att.attnum = cols.local_attnum
            JOIN pg_catalog.pg_attribute ref_att
                ON ref_att.attrelid = con.confrelid AND ref_att.attnum = cols.referenced_attnum
            WHERE con.contype = 'f'
              AND ns.nspname = {self._literal(schema)}
            ORDER BY cl.relname, con.conname, cols.position
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
                on_delete=self._parse_action(first.get("on_delete"), table_name, constraint_name),
                on_update=self._parse_action(first.get("on_update"), table_name, constraint_name),
            ))
        return foreign_keys

    def load_enums(self, schema: str) -> List[RawEnum]:
        # LEFT JOIN keeps enum types that have no labels yet
        result = self._query(f"""
            SELECT t.typname AS enum_name, e.enumlabel AS label
            FROM pg_catalog.pg_type t
            JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
            LEFT JOIN pg_catalog.pg_enum e ON e.enumtypid = t.oid
            WHERE t.typtype = 'e'
              AND n.nspname = {self._literal(schema)}
            ORDER BY t.typname, e.enumsortorder
        """)

        enums: Dict[str, RawEnum] = {}
        for row in result:
            name = self._required(row, "enum_name", f"enum in schema '{schema}'")
            enum = enums.setdefault(name, RawEnum(name=name))
            if row.get("label") is not None:
                enum.labels.append(row["label"])
        return list(enums.values())

    def load_sequences(self, schema: str) -> List[RawSequence]:
        result = self._query(f"""
            SELECT
                sequencename AS sequence_name,
                start_value,
                last_value,
                increment_by
            FROM pg_catalog.pg_sequences
            WHERE schemaname = {self._literal(schema)}
            ORDER BY sequencename
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
        result = self._query(r"""
            SELECT nspname AS schema_name
            FROM pg_catalog.pg_namespace
            WHERE nspname <> 'information_schema'
              AND nspname NOT LIKE 'pg\_%'
            ORDER BY nspname
        """)
        return [row["schema_name"] for row in result]

    def get_size(self, schema: str) -> int:
        result = self._query(f"""
            SELECT COALESCE(SUM(pg_catalog.pg_total_relation_size(c.oid)), 0) AS size
            FROM pg_catalog.pg_class c
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = {self._literal(schema)}
              AND c.relkind IN ('r', 'p', 'm')
        """)
        if not result:
            return 0
        return self._as_int(result[0].get("size")) or 0

    def get_version(self) -> Optional[str]:
        result = self._query("SELECT version() AS version")
        return result[0].get("version") if result else None
