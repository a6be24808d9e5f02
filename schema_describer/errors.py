"""Error types for schema description."""

from typing import Optional, Dict, Any


class DescriberError(Exception):
    """Base exception for schema description errors."""

    def __init__(self, message: str, code: str = "DESCRIBER_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for structured output."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConnectionError(DescriberError):
    """A metadata query could not be executed against the database."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONNECTION_ERROR", details=details)


class CatalogError(DescriberError):
    """Catalog rows are inconsistent or cannot be interpreted.

    The details always name the offending object so a human can find it:
    ``table``, and where relevant ``column``, ``index`` or ``constraint``.
    """

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
        constraint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = dict(details or {})
        if table is not None:
            error_details["table"] = table
        if column is not None:
            error_details["column"] = column
        if constraint is not None:
            error_details["constraint"] = constraint
        super().__init__(message, code="CATALOG_ERROR", details=error_details)
        self.table = table
        self.column = column
        self.constraint = constraint


class UnsupportedEngineError(DescriberError):
    """No catalog backend is registered for the requested engine."""

    def __init__(self, engine: str):
        super().__init__(
            f"Unsupported database engine: {engine}",
            code="UNSUPPORTED_ENGINE",
            details={"engine": engine},
        )
        self.engine = engine
