"""Supported database engine families."""

from enum import Enum
from typing import Dict, Union

from .errors import UnsupportedEngineError


class EngineFamily(str, Enum):
    """Engine families with a registered catalog backend."""
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    DUCKDB = "duckdb"


# Driver and dialect names that identify an engine family
ENGINE_ALIASES: Dict[str, EngineFamily] = {
    "postgres": EngineFamily.POSTGRES,
    "postgresql": EngineFamily.POSTGRES,
    "pg": EngineFamily.POSTGRES,
    "psycopg2": EngineFamily.POSTGRES,
    "mysql": EngineFamily.MYSQL,
    "mariadb": EngineFamily.MYSQL,
    "pymysql": EngineFamily.MYSQL,
    "sqlite": EngineFamily.SQLITE,
    "sqlite3": EngineFamily.SQLITE,
    "duckdb": EngineFamily.DUCKDB,
}


def resolve_engine(engine: Union[str, EngineFamily]) -> EngineFamily:
    """Map an engine identifier to its family.

    Raises:
        UnsupportedEngineError: if the identifier names no known engine
    """
    if isinstance(engine, EngineFamily):
        return engine
    family = ENGINE_ALIASES.get(str(engine).strip().lower())
    if family is None:
        raise UnsupportedEngineError(str(engine))
    return family
