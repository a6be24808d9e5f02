"""Shared pytest fixtures for schema-describer tests."""

import sqlite3

import pytest

from schema_describer.executor import DBAPIQueryExecutor
from tests.fixtures.mock_executor import (
    create_duckdb_executor,
    create_mysql_executor,
    create_postgres_executor,
)


LIBRARY_DDL = """
CREATE TABLE authors (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL
);
CREATE TABLE books (
    id INTEGER PRIMARY KEY,
    author_id INTEGER NOT NULL REFERENCES authors ON DELETE CASCADE,
    title VARCHAR(200) NOT NULL,
    isbn CHAR(13)
);
CREATE UNIQUE INDEX books_author_title ON books (author_id, title);
"""


@pytest.fixture
def sqlite_connection():
    """In-memory SQLite connection, closed after the test."""
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def sqlite_executor(sqlite_connection):
    """Executor over an empty in-memory SQLite database."""
    return DBAPIQueryExecutor(sqlite_connection, "sqlite")


@pytest.fixture
def library_executor(sqlite_connection):
    """Executor over an in-memory SQLite database with authors and books."""
    sqlite_connection.executescript(LIBRARY_DDL)
    return DBAPIQueryExecutor(sqlite_connection, "sqlite")


@pytest.fixture
def library_db_path(tmp_path):
    """SQLite database file with authors and books."""
    path = tmp_path / "library.db"
    connection = sqlite3.connect(str(path))
    connection.executescript(LIBRARY_DDL)
    connection.commit()
    connection.close()
    return path


@pytest.fixture
def postgres_executor():
    """Mock executor answering Postgres catalog queries."""
    return create_postgres_executor()


@pytest.fixture
def mysql_executor():
    """Mock executor answering MySQL catalog queries."""
    return create_mysql_executor()


@pytest.fixture
def duckdb_executor():
    """Mock executor answering DuckDB catalog queries."""
    return create_duckdb_executor()
