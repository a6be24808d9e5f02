"""Turns a backend's raw catalog rows into a cross-linked Schema."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .backends.base import CatalogBackend
from .backends.raw import CatalogSnapshot, RawColumn, RawEnum, RawForeignKey, RawIndex, RawSequence, RawTable
from .defaults import DefaultContext, DefaultValueParser
from .errors import CatalogError
from .models import Anomaly, Column, EnumDefinition, ForeignKey, Index, Schema, Sequence, Table
from .type_mappers import TypeMapper

logger = logging.getLogger(__name__)

NULLABLE_PRIMARY_KEY = "nullable_primary_key"
CROSS_SCHEMA_FOREIGN_KEY = "cross_schema_foreign_key"


@dataclass
class _TableDraft:
    """A table under construction, with lookups by folded name."""
    name: str
    columns: List[Column] = field(default_factory=list)
    columns_by_name: Dict[str, Column] = field(default_factory=dict)
    indexes: List[Index] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)
    primary_key: Optional[Index] = None

    def freeze(self) -> Table:
        return Table(
            name=self.name,
            columns=tuple(self.columns),
            indexes=tuple(self.indexes),
            foreign_keys=tuple(self.foreign_keys),
        )


@dataclass
class _Assembly:
    """Scratch state of a single ``assemble`` call."""
    snapshot: CatalogSnapshot
    enums: Dict[str, EnumDefinition] = field(default_factory=dict)
    sequence_names: Dict[str, str] = field(default_factory=dict)
    tables: Dict[str, _TableDraft] = field(default_factory=dict)
    anomalies: List[Anomaly] = field(default_factory=list)


class SchemaAssembler:
    """Assembles a Schema from a CatalogSnapshot.

    Phases run in a fixed order: enums, tables with columns, indexes,
    foreign keys, sequences. Each phase resolves names against lookups
    built by the earlier ones. The finished schema is validated before
    it is returned, so callers never see a partially linked model.
    """

    def __init__(
        self,
        engine: str,
        type_mapper: TypeMapper,
        default_parser: DefaultValueParser,
        fold_identifier: Callable[[str], str] = str.lower,
    ):
        self.engine = engine
        self.type_mapper = type_mapper
        self.default_parser = default_parser
        self.fold = fold_identifier

    @classmethod
    def for_backend(cls, backend: CatalogBackend) -> "SchemaAssembler":
        """Build an assembler using a backend's normalizers and folding rule."""
        return cls(
            engine=backend.engine,
            type_mapper=backend.type_mapper(),
            default_parser=backend.default_parser(),
            fold_identifier=backend.fold_identifier,
        )

    def assemble(self, snapshot: CatalogSnapshot) -> Schema:
        """Assemble and validate a Schema.

        Raises:
            CatalogError: if the catalog rows cannot be cross-linked
        """
        state = _Assembly(snapshot=snapshot)

        enums = [self._build_enum(raw, state) for raw in snapshot.enums]
        state.sequence_names = {self.fold(raw.name): raw.name for raw in snapshot.sequences}
        for raw_table in snapshot.tables:
            self._build_table(raw_table, state)
        for raw_index in snapshot.indexes:
            self._attach_index(raw_index, state)
        for raw_fk in snapshot.foreign_keys:
            self._attach_foreign_key(raw_fk, state)
        sequences = [self._build_sequence(raw) for raw in snapshot.sequences]

        schema = Schema(
            name=snapshot.schema_name,
            engine=self.engine,
            tables=tuple(draft.freeze() for draft in state.tables.values()),
            enums=tuple(enums),
            sequences=tuple(sequences),
            anomalies=tuple(state.anomalies),
        )
        validate_schema(schema, self.fold)

        logger.debug(
            "Assembled schema '%s': %d tables, %d enums, %d sequences, %d anomalies",
            schema.name,
            len(schema.tables),
            len(schema.enums),
            len(schema.sequences),
            len(schema.anomalies),
        )
        return schema

    # Phase 1: enums

    def _build_enum(self, raw: RawEnum, state: _Assembly) -> EnumDefinition:
        key = self.fold(raw.name)
        if key in state.enums:
            raise CatalogError(f"Duplicate enum '{raw.name}'", details={"enum": raw.name})
        if len(set(raw.labels)) != len(raw.labels):
            raise CatalogError(f"Enum '{raw.name}' has duplicate labels", details={"enum": raw.name})
        enum = EnumDefinition(name=raw.name, variants=tuple(raw.labels))
        state.enums[key] = enum
        return enum

    # Phase 2: tables and columns

    def _build_table(self, raw: RawTable, state: _Assembly):
        key = self.fold(raw.name)
        if key in state.tables:
            raise CatalogError(f"Duplicate table '{raw.name}'", table=raw.name)
        draft = _TableDraft(name=raw.name)
        for raw_column in raw.columns:
            column = self._build_column(raw_column, state)
            column_key = self.fold(column.name)
            if column_key in draft.columns_by_name:
                raise CatalogError(
                    f"Duplicate column '{column.name}' in table '{raw.name}'",
                    table=raw.name,
                    column=column.name,
                )
            draft.columns.append(column)
            draft.columns_by_name[column_key] = column
        state.tables[key] = draft

    def _build_column(self, raw: RawColumn, state: _Assembly) -> Column:
        column_type = self.type_mapper.normalize(
            raw.native_type,
            enums=state.enums,
            enum_name=raw.enum_name,
            schema=state.snapshot.schema_name,
        )
        default = self.default_parser.parse(
            raw.default,
            column_type,
            DefaultContext(
                sequences=state.sequence_names,
                enums=state.enums,
                is_expression=raw.default_is_expression,
            ),
        )
        # A serial column is one whose default draws from a sequence
        is_identity = raw.is_identity or (default is not None and default.is_sequence_next)
        return Column(
            name=raw.name,
            column_type=column_type,
            is_nullable=raw.is_nullable,
            default=default,
            is_identity=is_identity,
        )

    # Phase 3: indexes

    def _attach_index(self, raw: RawIndex, state: _Assembly):
        draft = self._table(raw.table, state, f"Index '{raw.name}' belongs to unknown table '{raw.table}'")
        columns = tuple(self._column(draft, name, f"Index '{raw.name}'", raw.name).name for name in raw.columns)
        if not columns:
            raise CatalogError(f"Index '{raw.name}' on table '{raw.table}' has no columns", table=raw.table, constraint=raw.name)
        index = Index(
            name=raw.name,
            columns=columns,
            is_unique=raw.is_unique or raw.is_primary_key,
            is_primary_key=raw.is_primary_key,
        )

        if index.is_primary_key:
            if draft.primary_key is not None:
                raise CatalogError(
                    f"Table '{draft.name}' has more than one primary key: "
                    f"'{draft.primary_key.name}' and '{index.name}'",
                    table=draft.name,
                    constraint=index.name,
                )
            draft.primary_key = index
            for name in columns:
                if draft.columns_by_name[self.fold(name)].is_nullable:
                    self._flag(
                        state,
                        Anomaly(
                            kind=NULLABLE_PRIMARY_KEY,
                            table=draft.name,
                            column=name,
                            message=f"Primary key column '{draft.name}.{name}' is nullable",
                        ),
                    )

        draft.indexes.append(index)

    # Phase 4: foreign keys

    def _attach_foreign_key(self, raw: RawForeignKey, state: _Assembly):
        label = f"Foreign key '{raw.constraint_name}'" if raw.constraint_name else "Foreign key"
        draft = self._table(raw.table, state, f"{label} belongs to unknown table '{raw.table}'")

        if raw.referenced_schema is not None and raw.referenced_schema != state.snapshot.schema_name:
            self._flag(
                state,
                Anomaly(
                    kind=CROSS_SCHEMA_FOREIGN_KEY,
                    table=draft.name,
                    message=(
                        f"{label} of table '{draft.name}' references "
                        f"'{raw.referenced_schema}.{raw.referenced_table}' outside schema "
                        f"'{state.snapshot.schema_name}' and is not described"
                    ),
                ),
            )
            return

        referenced = state.tables.get(self.fold(raw.referenced_table))
        if referenced is None:
            raise CatalogError(
                f"{label} of table '{draft.name}' references unknown table '{raw.referenced_table}'",
                table=draft.name,
                constraint=raw.constraint_name,
                details={"referenced_table": raw.referenced_table},
            )

        referenced_names = list(raw.referenced_columns)
        if not referenced_names:
            if referenced.primary_key is None:
                raise CatalogError(
                    f"{label} of table '{draft.name}' targets the primary key of "
                    f"'{referenced.name}', which has none",
                    table=draft.name,
                    constraint=raw.constraint_name,
                )
            referenced_names = list(referenced.primary_key.columns)

        if len(raw.columns) != len(referenced_names):
            raise CatalogError(
                f"{label} of table '{draft.name}' has {len(raw.columns)} columns "
                f"but references {len(referenced_names)}",
                table=draft.name,
                constraint=raw.constraint_name,
            )

        draft.foreign_keys.append(ForeignKey(
            columns=tuple(self._column(draft, name, label, raw.constraint_name).name for name in raw.columns),
            referenced_table=referenced.name,
            referenced_columns=tuple(
                self._column(referenced, name, label, raw.constraint_name).name for name in referenced_names
            ),
            on_delete=raw.on_delete,
            on_update=raw.on_update,
            constraint_name=raw.constraint_name,
        ))

    # Phase 5: sequences

    def _build_sequence(self, raw: RawSequence) -> Sequence:
        return Sequence(
            name=raw.name,
            start_value=raw.start_value,
            current_value=raw.current_value,
            increment=raw.increment,
        )

    # Lookups

    def _table(self, name: str, state: _Assembly, message: str) -> _TableDraft:
        draft = state.tables.get(self.fold(name))
        if draft is None:
            raise CatalogError(message, table=name)
        return draft

    def _column(self, draft: _TableDraft, name: str, owner: str, constraint: Optional[str]) -> Column:
        column = draft.columns_by_name.get(self.fold(name))
        if column is None:
            raise CatalogError(
                f"{owner} names missing column '{name}' of table '{draft.name}'",
                table=draft.name,
                column=name,
                constraint=constraint,
            )
        return column

    @staticmethod
    def _flag(state: _Assembly, anomaly: Anomaly):
        logger.warning("Catalog anomaly (%s): %s", anomaly.kind, anomaly.message)
        state.anomalies.append(anomaly)


def validate_schema(schema: Schema, fold_identifier: Callable[[str], str] = str.lower):
    """Check the cross-reference invariants of an assembled schema.

    Raises:
        CatalogError: naming the first violating table, column or constraint
    """
    fold = fold_identifier
    tables: Dict[str, Table] = {}
    for table in schema.tables:
        if fold(table.name) in tables:
            raise CatalogError(f"Duplicate table '{table.name}'", table=table.name)
        tables[fold(table.name)] = table

    enums = {fold(enum.name): enum for enum in schema.enums}
    sequences = {fold(sequence.name) for sequence in schema.sequences}

    for table in schema.tables:
        columns: Dict[str, Column] = {}
        for column in table.columns:
            if fold(column.name) in columns:
                raise CatalogError(f"Duplicate column '{column.name}' in table '{table.name}'", table=table.name, column=column.name)
            columns[fold(column.name)] = column

            column_type = column.column_type
            if column_type.is_enum:
                enum = enums.get(fold(column_type.enum_name or ""))
                if enum is None or not enum.variants:
                    raise CatalogError(
                        f"Column '{table.name}.{column.name}' uses unknown or empty enum '{column_type.enum_name}'",
                        table=table.name,
                        column=column.name,
                    )
            default = column.default
            if default is not None and default.is_sequence_next and fold(default.sequence_name or "") not in sequences:
                raise CatalogError(
                    f"Default of column '{table.name}.{column.name}' uses unknown sequence '{default.sequence_name}'",
                    table=table.name,
                    column=column.name,
                )

        primary_keys = [index for index in table.indexes if index.is_primary_key]
        if len(primary_keys) > 1:
            raise CatalogError(f"Table '{table.name}' has more than one primary key", table=table.name)

        for index in table.indexes:
            for name in index.columns:
                if fold(name) not in columns:
                    raise CatalogError(
                        f"Index '{index.name}' names missing column '{name}' of table '{table.name}'",
                        table=table.name,
                        column=name,
                        constraint=index.name,
                    )

        for fk in table.foreign_keys:
            if len(fk.columns) != len(fk.referenced_columns):
                raise CatalogError(
                    f"Foreign key of table '{table.name}' has mismatched column counts",
                    table=table.name,
                    constraint=fk.constraint_name,
                )
            referenced = tables.get(fold(fk.referenced_table))
            if referenced is None:
                raise CatalogError(
                    f"Foreign key of table '{table.name}' references unknown table '{fk.referenced_table}'",
                    table=table.name,
                    constraint=fk.constraint_name,
                )
            referenced_columns = {fold(name) for name in referenced.column_names}
            for name in fk.columns:
                if fold(name) not in columns:
                    raise CatalogError(
                        f"Foreign key of table '{table.name}' names missing column '{name}'",
                        table=table.name,
                        column=name,
                        constraint=fk.constraint_name,
                    )
            for name in fk.referenced_columns:
                if fold(name) not in referenced_columns:
                    raise CatalogError(
                        f"Foreign key of table '{table.name}' references missing column "
                        f"'{fk.referenced_table}.{name}'",
                        table=table.name,
                        column=name,
                        constraint=fk.constraint_name,
                    )
