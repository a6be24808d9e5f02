"""schema-describer - engine-agnostic relational schema introspection.

Describes the tables, columns, types, defaults, indexes, foreign keys,
enums and sequences of a PostgreSQL, MySQL/MariaDB, SQLite or DuckDB
schema as one immutable model.
"""

__version__ = "0.1.0"

from .models import (
    Anomaly,
    Column,
    ColumnType,
    DefaultKind,
    DefaultValue,
    EnumDefinition,
    ForeignKey,
    ForeignKeyAction,
    Index,
    Schema,
    SchemaMetadata,
    Sequence,
    Table,
    TypeFamily,
)
from .engines import EngineFamily, resolve_engine
from .errors import CatalogError, ConnectionError, DescriberError, UnsupportedEngineError
from .executor import DBAPIQueryExecutor, QueryExecutor, connect
from .describer import describe, describe_metadata, list_schemas
from .serialization import schema_to_dict

__all__ = [
    # Entry points
    "describe",
    "describe_metadata",
    "list_schemas",
    "schema_to_dict",
    # Execution
    "QueryExecutor",
    "DBAPIQueryExecutor",
    "connect",
    "EngineFamily",
    "resolve_engine",
    # Errors
    "DescriberError",
    "ConnectionError",
    "CatalogError",
    "UnsupportedEngineError",
    # Data models
    "Schema",
    "Table",
    "Column",
    "ColumnType",
    "TypeFamily",
    "DefaultValue",
    "DefaultKind",
    "Index",
    "ForeignKey",
    "ForeignKeyAction",
    "EnumDefinition",
    "Sequence",
    "Anomaly",
    "SchemaMetadata",
]
