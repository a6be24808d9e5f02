"""Configuration management for schema-describer."""

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional

from .engines import EngineFamily, resolve_engine


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.schema-describer/.env
    3. Package directory (where this file is located)
    """
    if os.path.exists(".env"):
        return ".env"

    user_env = Path.home() / ".schema-describer" / ".env"
    if user_env.exists():
        return str(user_env)

    package_dir = Path(__file__).parent.parent
    package_env = package_dir / ".env"
    if package_env.exists():
        return str(package_env)

    return None


class Settings(BaseSettings):
    """Application settings loaded from SCHEMA_DESCRIBER_* environment variables."""

    database_url: Optional[str] = Field(
        default=None,
        description="Connection URL used when a command is given none"
    )
    default_schema: Optional[str] = Field(
        default=None,
        description="Schema to describe when --schema is not given (default depends on the engine)"
    )
    engine: Optional[str] = Field(
        default=None,
        description="Engine family override (postgres, mysql, sqlite, duckdb)"
    )
    table_allowlist: List[str] = Field(
        default_factory=list,
        description="Only describe these tables (JSON list in the environment)"
    )
    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI"
    )

    class Config:
        env_prefix = "SCHEMA_DESCRIBER_"
        env_file = _find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"

    def schema_for(self, engine: EngineFamily, database_name: str) -> str:
        """Resolve the schema to describe for an engine.

        Args:
            engine: Engine family of the connection
            database_name: Database named by the connection URL (MySQL's schema)
        """
        if self.default_schema:
            return self.default_schema
        family = resolve_engine(engine)
        if family is EngineFamily.POSTGRES:
            return "public"
        if family is EngineFamily.MYSQL:
            return database_name
        return "main"


# Global settings instance
settings = Settings()
