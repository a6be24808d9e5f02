"""Catalog query backends, one per engine family."""

from typing import Dict, Type, Union

from ..engines import EngineFamily, resolve_engine
from ..executor import QueryExecutor
from .base import CatalogBackend
from .duckdb import DuckDBBackend
from .mysql import MySQLBackend
from .postgres import PostgresBackend
from .raw import CatalogSnapshot, RawColumn, RawEnum, RawForeignKey, RawIndex, RawSequence, RawTable
from .sqlite import SQLiteBackend

BACKENDS: Dict[EngineFamily, Type[CatalogBackend]] = {
    EngineFamily.POSTGRES: PostgresBackend,
    EngineFamily.MYSQL: MySQLBackend,
    EngineFamily.SQLITE: SQLiteBackend,
    EngineFamily.DUCKDB: DuckDBBackend,
}


def get_backend(engine: Union[str, EngineFamily], executor: QueryExecutor) -> CatalogBackend:
    """Instantiate the backend registered for an engine.

    Raises:
        UnsupportedEngineError: if no backend is registered for ``engine``
    """
    return BACKENDS[resolve_engine(engine)](executor)


__all__ = [
    # Registry
    "BACKENDS",
    "get_backend",
    # Backends
    "CatalogBackend",
    "PostgresBackend",
    "MySQLBackend",
    "SQLiteBackend",
    "DuckDBBackend",
    # Raw rows
    "CatalogSnapshot",
    "RawColumn",
    "RawEnum",
    "RawForeignKey",
    "RawIndex",
    "RawSequence",
    "RawTable",
]
