"""Tests for error types and engine resolution."""

import pytest

from schema_describer.engines import EngineFamily, resolve_engine
from schema_describer.errors import CatalogError, ConnectionError, DescriberError, UnsupportedEngineError


class TestErrors:
    """Tests for the error hierarchy."""

    def test_base_error(self):
        """Test DescriberError carries message, code and details."""
        error = DescriberError("boom", details={"a": 1})

        assert str(error) == "boom"
        assert error.to_dict() == {"code": "DESCRIBER_ERROR", "message": "boom", "details": {"a": 1}}

    def test_catalog_error_names_object(self):
        """Test CatalogError details name the offending object."""
        error = CatalogError("bad index", table="users", column="email", constraint="users_email_idx")

        assert isinstance(error, DescriberError)
        assert error.code == "CATALOG_ERROR"
        assert error.details == {"table": "users", "column": "email", "constraint": "users_email_idx"}

    def test_catalog_error_keeps_details(self):
        """Test extra details are merged with the object names."""
        error = CatalogError("bad", table="t", details={"field": "column_name"})
        assert error.details == {"field": "column_name", "table": "t"}

    def test_connection_error(self):
        """Test ConnectionError code."""
        error = ConnectionError("lost", details={"engine": "mysql"})
        assert error.to_dict()["code"] == "CONNECTION_ERROR"

    def test_unsupported_engine_error(self):
        """Test the unsupported engine message."""
        error = UnsupportedEngineError("oracle")
        assert error.message == "Unsupported database engine: oracle"
        assert error.details == {"engine": "oracle"}


class TestResolveEngine:
    """Tests for engine name resolution."""

    @pytest.mark.parametrize("name,family", [
        ("postgres", EngineFamily.POSTGRES),
        ("PostgreSQL", EngineFamily.POSTGRES),
        ("psycopg2", EngineFamily.POSTGRES),
        ("mariadb", EngineFamily.MYSQL),
        ("sqlite3", EngineFamily.SQLITE),
        (" duckdb ", EngineFamily.DUCKDB),
        (EngineFamily.MYSQL, EngineFamily.MYSQL),
    ])
    def test_aliases(self, name, family):
        """Test known names resolve to their family."""
        assert resolve_engine(name) is family

    def test_unknown(self):
        """Test unknown names raise."""
        with pytest.raises(UnsupportedEngineError):
            resolve_engine("mssql")

    def test_none(self):
        """Test a missing engine raises."""
        with pytest.raises(UnsupportedEngineError) as exc_info:
            resolve_engine(None)
        assert exc_info.value.engine == "None"
