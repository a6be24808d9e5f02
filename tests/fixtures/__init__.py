"""Test fixtures package."""

from .mock_executor import (
    MockQueryExecutor,
    FailingQueryExecutor,
    create_postgres_executor,
    create_mysql_executor,
    create_duckdb_executor,
)

__all__ = [
    "MockQueryExecutor",
    "FailingQueryExecutor",
    "create_postgres_executor",
    "create_mysql_executor",
    "create_duckdb_executor",
]
