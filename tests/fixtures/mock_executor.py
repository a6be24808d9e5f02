"""Mock query executors for testing backends without a database server."""

import re
from typing import Any, Dict, List, Optional

from schema_describer.executor import QueryExecutor


class MockQueryExecutor(QueryExecutor):
    """Mock QueryExecutor returning canned catalog rows.

    Responses are matched by regex against the SQL text; the first
    pattern that matches wins. Every query is recorded.
    """

    def __init__(self, engine: str):
        self.engine = engine
        self._pattern_responses: List[tuple] = []
        self.queries: List[str] = []

    def add_response(self, sql_pattern: str, rows: List[Dict[str, Any]]):
        """Add rows to return for queries matching a pattern (regex)."""
        self._pattern_responses.append((re.compile(sql_pattern, re.DOTALL | re.IGNORECASE), rows))

    def override_response(self, sql_pattern: str, rows: List[Dict[str, Any]]):
        """Add rows that take precedence over every earlier response."""
        self._pattern_responses.insert(0, (re.compile(sql_pattern, re.DOTALL | re.IGNORECASE), rows))

    def query(self, sql: str) -> List[Dict[str, Any]]:
        self.queries.append(sql)
        for pattern, rows in self._pattern_responses:
            if pattern.search(sql):
                return [dict(row) for row in rows]
        return []

    def queries_matching(self, sql_pattern: str) -> List[str]:
        pattern = re.compile(sql_pattern, re.DOTALL | re.IGNORECASE)
        return [sql for sql in self.queries if pattern.search(sql)]


class FailingQueryExecutor(QueryExecutor):
    """Executor whose queries fail the way a dropped connection would."""

    def __init__(self, engine: str, error: Optional[Exception] = None):
        self.engine = engine
        self.error = error or RuntimeError("server closed the connection unexpectedly")
        self.queries: List[str] = []

    def query(self, sql: str) -> List[Dict[str, Any]]:
        self.queries.append(sql)
        raise self.error


def create_postgres_executor() -> MockQueryExecutor:
    """Postgres catalog for a 'public' schema with customers and orders."""
    executor = MockQueryExecutor("postgres")
    executor.add_response(r"information_schema\.tables", [
        {"table_name": "customers"},
        {"table_name": "orders"},
    ])
    executor.add_response(r"information_schema\.columns", [
        {"table_name": "customers", "column_name": "id", "formatted_type": "integer", "is_nullable": "NO",
         "column_default": "nextval('customers_id_seq'::regclass)", "is_identity": "NO"},
        {"table_name": "customers", "column_name": "email", "formatted_type": "character varying(255)",
         "is_nullable": "NO", "column_default": None, "is_identity": "NO"},
        {"table_name": "customers", "column_name": "mood", "formatted_type": "mood", "is_nullable": "YES",
         "column_default": "'happy'::mood", "is_identity": "NO"},
        {"table_name": "customers", "column_name": "created_at", "formatted_type": "timestamp with time zone",
         "is_nullable": "NO", "column_default": "now()", "is_identity": "NO"},
        {"table_name": "customers", "column_name": "tags", "formatted_type": "text[]", "is_nullable": "YES",
         "column_default": None, "is_identity": "NO"},
        {"table_name": "customers", "column_name": "balance", "formatted_type": "numeric(10,2)",
         "is_nullable": "NO", "column_default": "0.00", "is_identity": "NO"},
        {"table_name": "customers", "column_name": "location", "formatted_type": "point", "is_nullable": "YES",
         "column_default": None, "is_identity": "NO"},
        {"table_name": "orders", "column_name": "id", "formatted_type": "bigint", "is_nullable": "NO",
         "column_default": None, "is_identity": "YES"},
        {"table_name": "orders", "column_name": "customer_id", "formatted_type": "integer", "is_nullable": "NO",
         "column_default": None, "is_identity": "NO"},
        {"table_name": "orders", "column_name": "note", "formatted_type": "text", "is_nullable": "YES",
         "column_default": "'n/a'::text", "is_identity": "NO"},
        {"table_name": "orders", "column_name": "total", "formatted_type": "numeric(12,2)", "is_nullable": "YES",
         "column_default": "random()", "is_identity": "NO"},
    ])
    executor.add_response(r"pg_catalog\.pg_index ix", [
        {"table_name": "customers", "index_name": "customers_pkey", "column_name": "id",
         "is_unique": True, "is_primary_key": True, "column_position": 1},
        {"table_name": "customers", "index_name": "customers_email_key", "column_name": "email",
         "is_unique": True, "is_primary_key": False, "column_position": 1},
        {"table_name": "orders", "index_name": "orders_customer_id_note_idx", "column_name": "customer_id",
         "is_unique": False, "is_primary_key": False, "column_position": 1},
        {"table_name": "orders", "index_name": "orders_customer_id_note_idx", "column_name": "note",
         "is_unique": False, "is_primary_key": False, "column_position": 2},
        {"table_name": "orders", "index_name": "orders_pkey", "column_name": "id",
         "is_unique": True, "is_primary_key": True, "column_position": 1},
    ])
    executor.add_response(r"pg_catalog\.pg_constraint con", [
        {"constraint_name": "orders_customer_id_fkey", "table_name": "orders", "column_name": "customer_id",
         "referenced_schema": "public", "referenced_table": "customers", "referenced_column": "id",
         "on_delete": "c", "on_update": "a", "position": 1},
    ])
    executor.add_response(r"pg_catalog\.pg_enum", [
        {"enum_name": "draft_state", "label": None},
        {"enum_name": "mood", "label": "sad"},
        {"enum_name": "mood", "label": "ok"},
        {"enum_name": "mood", "label": "happy"},
    ])
    executor.add_response(r"pg_catalog\.pg_sequences", [
        {"sequence_name": "customers_id_seq", "start_value": 1, "last_value": 42, "increment_by": 1},
    ])
    executor.add_response(r"pg_total_relation_size", [{"size": 81920}])
    executor.add_response(r"SELECT version\(\)", [
        {"version": "PostgreSQL 16.2 on x86_64-pc-linux-gnu, compiled by gcc"},
    ])
    executor.add_response(r"NOT LIKE 'pg", [
        {"schema_name": "analytics"},
        {"schema_name": "public"},
    ])
    return executor


def create_mysql_executor(version: str = "8.0.36") -> MockQueryExecutor:
    """MySQL catalog for a 'shop' database with users and posts."""
    executor = MockQueryExecutor("mysql")
    executor.add_response(r"data_type = 'enum'", [
        {"table_name": "users", "column_name": "role", "column_type": "enum('admin','member')"},
    ])
    executor.add_response(r"table_type = 'BASE TABLE'", [
        {"table_name": "posts"},
        {"table_name": "users"},
    ])
    executor.add_response(r"FROM information_schema\.columns", [
        {"table_name": "posts", "column_name": "id", "column_type": "bigint", "is_nullable": "NO",
         "column_default": None, "extra": "auto_increment"},
        {"table_name": "posts", "column_name": "user_id", "column_type": "int", "is_nullable": "YES",
         "column_default": None, "extra": ""},
        {"table_name": "posts", "column_name": "title", "column_type": "varchar(200)", "is_nullable": "NO",
         "column_default": "Untitled", "extra": ""},
        {"table_name": "users", "column_name": "id", "column_type": "int", "is_nullable": "NO",
         "column_default": None, "extra": "auto_increment"},
        {"table_name": "users", "column_name": "active", "column_type": "tinyint(1)", "is_nullable": "NO",
         "column_default": "1", "extra": ""},
        {"table_name": "users", "column_name": "role", "column_type": "enum('admin','member')",
         "is_nullable": "YES", "column_default": "member", "extra": ""},
        {"table_name": "users", "column_name": "created_at", "column_type": "datetime", "is_nullable": "NO",
         "column_default": "CURRENT_TIMESTAMP", "extra": "DEFAULT_GENERATED"},
        {"table_name": "users", "column_name": "visits", "column_type": "bigint unsigned", "is_nullable": "NO",
         "column_default": "0", "extra": ""},
        {"table_name": "users", "column_name": "uid", "column_type": "char(36)", "is_nullable": "NO",
         "column_default": "(uuid())", "extra": "DEFAULT_GENERATED"},
        {"table_name": "users", "column_name": "flags", "column_type": "set('a','b')", "is_nullable": "YES",
         "column_default": None, "extra": ""},
    ])
    executor.add_response(r"information_schema\.statistics", [
        {"table_name": "posts", "index_name": "PRIMARY", "column_name": "id", "non_unique": 0, "seq_in_index": 1},
        {"table_name": "posts", "index_name": "fk_posts_user", "column_name": "user_id", "non_unique": 1, "seq_in_index": 1},
        {"table_name": "posts", "index_name": "idx_lower_title", "column_name": None, "non_unique": 1, "seq_in_index": 1},
        {"table_name": "users", "index_name": "PRIMARY", "column_name": "id", "non_unique": 0, "seq_in_index": 1},
        {"table_name": "users", "index_name": "uniq_users_uid", "column_name": "uid", "non_unique": 0, "seq_in_index": 1},
    ])
    executor.add_response(r"key_column_usage", [
        {"constraint_name": "fk_posts_user", "table_name": "posts", "column_name": "user_id",
         "referenced_schema": "shop", "referenced_table": "Users", "referenced_column": "ID",
         "delete_rule": "RESTRICT", "update_rule": "CASCADE", "ordinal_position": 1},
    ])
    executor.add_response(r"data_length", [{"size": 49152}])
    executor.add_response(r"@@GLOBAL\.version", [{"version": version}])
    executor.add_response(r"information_schema\.schemata", [{"schema_name": "shop"}])
    return executor


def create_duckdb_executor() -> MockQueryExecutor:
    """DuckDB catalog for the 'main' schema with accounts and transfers."""
    executor = MockQueryExecutor("duckdb")
    executor.add_response(r"duckdb_tables\(\)", [
        {"table_name": "accounts"},
        {"table_name": "transfers"},
    ])
    executor.add_response(r"duckdb_columns\(\)", [
        {"table_name": "accounts", "column_name": "id", "data_type": "INTEGER", "is_nullable": False,
         "column_default": "nextval('accounts_id_seq')"},
        {"table_name": "accounts", "column_name": "name", "data_type": "VARCHAR", "is_nullable": True,
         "column_default": "CAST('anon' AS VARCHAR)"},
        {"table_name": "accounts", "column_name": "status", "data_type": "account_status", "is_nullable": True,
         "column_default": None},
        {"table_name": "accounts", "column_name": "kind", "data_type": "ENUM('personal', 'business')",
         "is_nullable": True, "column_default": None},
        {"table_name": "accounts", "column_name": "amounts", "data_type": "INTEGER[]", "is_nullable": True,
         "column_default": None},
        {"table_name": "accounts", "column_name": "balance", "data_type": "DECIMAL(18,3)", "is_nullable": False,
         "column_default": "CAST(0 AS DECIMAL(18,3))"},
        {"table_name": "accounts", "column_name": "opened_at", "data_type": "TIMESTAMP", "is_nullable": True,
         "column_default": "CURRENT_TIMESTAMP"},
        {"table_name": "transfers", "column_name": "id", "data_type": "BIGINT", "is_nullable": False,
         "column_default": None},
        {"table_name": "transfers", "column_name": "account_id", "data_type": "INTEGER", "is_nullable": False,
         "column_default": None},
    ])
    executor.add_response(r"constraint_type IN \('PRIMARY KEY', 'UNIQUE'\)", [
        {"table_name": "accounts", "constraint_index": 0, "constraint_type": "PRIMARY KEY",
         "constraint_text": "PRIMARY KEY(id)", "constraint_column_names": ["id"]},
        {"table_name": "accounts", "constraint_index": 1, "constraint_type": "UNIQUE",
         "constraint_text": "UNIQUE(name)", "constraint_column_names": ["name"]},
        {"table_name": "transfers", "constraint_index": 0, "constraint_type": "PRIMARY KEY",
         "constraint_text": "PRIMARY KEY(id)", "constraint_column_names": ["id"]},
    ])
    executor.add_response(r"constraint_type IN \('FOREIGN KEY'\)", [
        {"table_name": "transfers", "constraint_index": 1, "constraint_type": "FOREIGN KEY",
         "constraint_text": "FOREIGN KEY (account_id) REFERENCES accounts(id)",
         "constraint_column_names": ["account_id"]},
        {"table_name": "transfers", "constraint_index": 2, "constraint_type": "FOREIGN KEY",
         "constraint_text": "FOREIGN KEY (account_id) REFERENCES accounts(id)",
         "constraint_column_names": ["account_id"]},
    ])
    executor.add_response(r"duckdb_indexes\(\)", [
        {"index_name": "accounts_lower_name", "table_name": "accounts", "is_unique": False,
         "sql": "CREATE INDEX accounts_lower_name ON accounts(lower(name));"},
        {"index_name": "transfers_account_idx", "table_name": "transfers", "is_unique": False,
         "sql": "CREATE INDEX transfers_account_idx ON transfers(account_id, id);"},
    ])
    executor.add_response(r"duckdb_types\(\)", [
        {"type_name": "account_kind", "labels": ["personal", "business"]},
        {"type_name": "account_status", "labels": ["active", "closed"]},
    ])
    executor.add_response(r"duckdb_sequences\(\)", [
        {"sequence_name": "accounts_id_seq", "start_value": 1, "last_value": None, "increment_by": 1},
    ])
    executor.add_response(r"pragma_database_size", [{"size": 262144}])
    executor.add_response(r"SELECT version\(\)", [{"version": "v1.1.3"}])
    executor.add_response(r"information_schema\.schemata", [
        {"schema_name": "information_schema"},
        {"schema_name": "main"},
        {"schema_name": "pg_catalog"},
        {"schema_name": "staging"},
    ])
    return executor
