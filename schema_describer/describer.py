"""Entry points for describing a database schema."""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from .assembler import SchemaAssembler, validate_schema
from .backends import get_backend
from .backends.base import CatalogBackend
from .executor import QueryExecutor
from .models import Schema, SchemaMetadata

logger = logging.getLogger(__name__)


def _backend_for(executor: QueryExecutor) -> CatalogBackend:
    """Pick the backend for the executor's declared engine before any query runs."""
    return get_backend(getattr(executor, "engine", None), executor)


def describe(
    executor: QueryExecutor,
    schema_name: str,
    table_filter: Optional[Iterable[str]] = None,
) -> Schema:
    """Describe one schema of the database behind ``executor``.

    Args:
        executor: Query executor declaring the engine it talks to
        schema_name: Schema (Postgres, DuckDB), database (MySQL) or attached
            database (SQLite) to describe
        table_filter: Optional allow-list of table names, compared with the
            engine's identifier folding; applied after assembly

    Returns:
        Fully cross-linked Schema

    Raises:
        UnsupportedEngineError: if the engine has no backend (no query is issued)
        ConnectionError: if a catalog query fails
        CatalogError: if the catalog rows cannot be assembled
    """
    backend = _backend_for(executor)
    logger.info("Describing %s schema '%s'", backend.engine, schema_name)

    snapshot = backend.fetch(schema_name)
    schema = SchemaAssembler.for_backend(backend).assemble(snapshot)

    if table_filter is not None:
        schema = filter_tables(schema, table_filter, backend.fold_identifier)
    return schema


def filter_tables(schema: Schema, table_names: Iterable[str], fold_identifier=str.lower) -> Schema:
    """Keep only the named tables.

    Foreign keys pointing at removed tables are dropped so the result still
    resolves every reference. Enums and sequences are left untouched.
    """
    wanted = {fold_identifier(name) for name in table_names}
    kept = [table for table in schema.tables if fold_identifier(table.name) in wanted]
    kept_names = {fold_identifier(table.name) for table in kept}
    missing = wanted - kept_names
    if missing:
        logger.warning("Tables not found in schema '%s': %s", schema.name, ", ".join(sorted(missing)))

    tables = []
    for table in kept:
        foreign_keys = tuple(fk for fk in table.foreign_keys if fold_identifier(fk.referenced_table) in kept_names)
        if len(foreign_keys) != len(table.foreign_keys):
            logger.info(
                "Dropping %d foreign key(s) of table '%s' into filtered-out tables",
                len(table.foreign_keys) - len(foreign_keys),
                table.name,
            )
            table = replace(table, foreign_keys=foreign_keys)
        tables.append(table)

    filtered = replace(schema, tables=tuple(tables))
    validate_schema(filtered, fold_identifier)
    return filtered


def list_schemas(executor: QueryExecutor) -> List[str]:
    """List the user schemas (databases, for MySQL) visible through ``executor``."""
    return _backend_for(executor).list_schemas()


def describe_metadata(executor: QueryExecutor, schema_name: str) -> SchemaMetadata:
    """Summarize a schema: table count, storage size and server version."""
    return _backend_for(executor).get_metadata(schema_name)
