"""Abstract base class for catalog query backends."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..defaults import DefaultValueParser
from ..errors import CatalogError, ConnectionError
from ..executor import QueryExecutor
from ..models import ForeignKeyAction, SchemaMetadata
from ..type_mappers import TypeMapper
from .raw import CatalogSnapshot, RawEnum, RawForeignKey, RawIndex, RawSequence, RawTable

logger = logging.getLogger(__name__)


def quote_literal(value: str) -> str:
    """Render a string as a SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def quote_identifier(value: str, quote: str = '"') -> str:
    """Render a name as a quoted SQL identifier."""
    return quote + value.replace(quote, quote + quote) + quote


def group_rows(rows: List[Dict[str, Any]], *keys: str) -> Dict[Tuple[Any, ...], List[Dict[str, Any]]]:
    """Group rows by the values of ``keys``, keeping first-seen group order."""
    groups: Dict[Tuple[Any, ...], List[Dict[str, Any]]] = {}
    for row in rows:
        groups.setdefault(tuple(row.get(key) for key in keys), []).append(row)
    return groups


class CatalogBackend(ABC):
    """Reads one engine's system catalogs.

    Subclasses implement the five loaders. A backend instance holds only
    the executor it queries through, so concurrent ``fetch`` calls for
    different schemas share no mutable state.
    """

    engine: str = ""

    # Maps the catalog's referential action spelling to the model's action
    ACTION_CODES: Dict[str, ForeignKeyAction] = {
        "CASCADE": ForeignKeyAction.CASCADE,
        "RESTRICT": ForeignKeyAction.RESTRICT,
        "SET NULL": ForeignKeyAction.SET_NULL,
        "SET DEFAULT": ForeignKeyAction.SET_DEFAULT,
        "NO ACTION": ForeignKeyAction.NO_ACTION,
    }

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    @abstractmethod
    def load_tables(self, schema: str) -> List[RawTable]:
        """Get all base tables with their columns in catalog order."""
        pass

    @abstractmethod
    def load_indexes(self, schema: str) -> List[RawIndex]:
        """Get all indexes, including the primary key, with ordered columns."""
        pass

    @abstractmethod
    def load_foreign_keys(self, schema: str) -> List[RawForeignKey]:
        """Get all foreign keys with ordered local and referenced columns."""
        pass

    @abstractmethod
    def load_enums(self, schema: str) -> List[RawEnum]:
        """Get named enumerated types; empty for engines without them."""
        pass

    @abstractmethod
    def load_sequences(self, schema: str) -> List[RawSequence]:
        """Get sequences; empty for engines without them."""
        pass

    @abstractmethod
    def list_schemas(self) -> List[str]:
        """Get all user schemas (system schemas excluded)."""
        pass

    @abstractmethod
    def get_size(self, schema: str) -> int:
        """Get the storage size of a schema in bytes."""
        pass

    @abstractmethod
    def get_version(self) -> Optional[str]:
        """Get the server version string."""
        pass

    @abstractmethod
    def type_mapper(self) -> TypeMapper:
        """Type normalizer for this engine."""
        pass

    @abstractmethod
    def default_parser(self) -> DefaultValueParser:
        """Default value parser for this engine."""
        pass

    def fold_identifier(self, name: str) -> str:
        """Apply the engine's identifier folding rule for comparisons."""
        return name.lower()

    def fetch(self, schema: str) -> CatalogSnapshot:
        """Run every loader for a schema and collect the raw result sets."""
        logger.debug("Fetching %s catalog for schema '%s'", self.engine, schema)
        snapshot = CatalogSnapshot(
            schema_name=schema,
            enums=self.load_enums(schema),
            tables=self.load_tables(schema),
            indexes=self.load_indexes(schema),
            foreign_keys=self.load_foreign_keys(schema),
            sequences=self.load_sequences(schema),
        )
        logger.debug(
            "Fetched %d tables, %d indexes, %d foreign keys, %d enums, %d sequences",
            len(snapshot.tables),
            len(snapshot.indexes),
            len(snapshot.foreign_keys),
            len(snapshot.enums),
            len(snapshot.sequences),
        )
        return snapshot

    def get_metadata(self, schema: str) -> SchemaMetadata:
        """Summarize a schema without assembling a full description."""
        return SchemaMetadata(
            schema_name=schema,
            engine=self.engine,
            table_count=len(self.list_table_names(schema)),
            size_in_bytes=self.get_size(schema),
            version=self.get_version(),
        )

    def list_table_names(self, schema: str) -> List[str]:
        """Get base table names; backends with a cheaper query override this."""
        return [table.name for table in self.load_tables(schema)]

    def _literal(self, value: str) -> str:
        """Embed a name in a catalog query as a string literal."""
        return quote_literal(value)

    def _query(self, sql: str) -> List[Dict[str, Any]]:
        """Execute a catalog query, reporting any failure as a connection error."""
        logger.debug("Catalog query: %s", " ".join(sql.split()))
        try:
            return self.executor.query(sql)
        except Exception as e:
            raise ConnectionError(
                f"Failed to execute {self.engine} catalog query: {e}",
                details={"engine": self.engine, "query": " ".join(sql.split())},
            ) from e

    def _parse_action(self, code: Any, table: str, constraint: Optional[str]) -> ForeignKeyAction:
        """Translate a referential action code, rejecting unknown codes."""
        action = self.ACTION_CODES.get(str(code).upper()) if code is not None else None
        if action is None:
            raise CatalogError(
                f"Unrecognized referential action '{code}' on foreign key "
                f"'{constraint}' of table '{table}'",
                table=table,
                constraint=constraint,
            )
        return action

    @staticmethod
    def _required(row: Dict[str, Any], key: str, object_name: str, table: Optional[str] = None) -> Any:
        """Read a metadata field that must not be null."""
        value = row.get(key)
        if value is None:
            raise CatalogError(
                f"Catalog returned no '{key}' for {object_name}",
                table=table,
                details={"field": key, "object": object_name},
            )
        return value

    @staticmethod
    def _as_bool(value: Any) -> bool:
        """Interpret the many spellings catalogs use for booleans."""
        if isinstance(value, str):
            return value.strip().upper() in ("YES", "Y", "TRUE", "T", "1")
        return bool(value)

    @staticmethod
    def _as_int(value: Any) -> Optional[int]:
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
