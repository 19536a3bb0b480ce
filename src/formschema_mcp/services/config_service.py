"""Configuration service for formschema-mcp.

This module provides configuration management and database connection utilities
for the formschema-mcp application. It centralizes environment variable handling
and database engine creation.
"""

from __future__ import annotations

import os

import sqlalchemy as sa

from formschema_mcp.schema_tools.constants import Constants
from formschema_mcp.schema_tools.models import FormSchemaConfig


class ConfigService:
    """Service for managing configuration and database connections."""

    @staticmethod
    def get_database_url() -> str:
        """Get database URL from environment variable.

        Returns:
            Database URL string

        Raises:
            ValueError: If FORMSCHEMA_MCP_DATABASE_URL environment variable is not set
        """
        database_url = os.getenv("FORMSCHEMA_MCP_DATABASE_URL")
        if not database_url:
            error_msg = "FORMSCHEMA_MCP_DATABASE_URL environment variable not set"
            raise ValueError(error_msg)
        return database_url

    @staticmethod
    def create_database_engine(url: str) -> sa.Engine:
        """Create SQLAlchemy database engine.

        Args:
            url: Database connection URL

        Returns:
            SQLAlchemy Engine instance
        """
        return sa.create_engine(url, pool_pre_ping=True)

    @staticmethod
    def max_columns() -> int:
        """Width limit of a backing table, in data columns."""
        val = os.getenv("FORMSCHEMA_MCP_MAX_COLUMNS", str(Constants.DEFAULT_MAX_COLUMNS))
        try:
            n = int(val)
        except ValueError:
            n = Constants.DEFAULT_MAX_COLUMNS
        return max(1, n)

    @staticmethod
    def db_schema() -> str | None:
        """Database schema for created tables; None uses the connection default."""
        val = os.getenv("FORMSCHEMA_MCP_DB_SCHEMA", "").strip()
        return val or None

    @staticmethod
    def realm_domains() -> list[str]:
        """Organisation domains stripped from the front of table prefixes."""
        val = os.getenv("FORMSCHEMA_MCP_REALM_DOMAINS", "")
        return [d.strip() for d in val.split(",") if d.strip()]

    @staticmethod
    def get_form_schema_config() -> FormSchemaConfig:
        """Get the schema construction configuration from the environment.

        Returns:
            FormSchemaConfig populated from environment variables
        """
        return FormSchemaConfig(
            max_columns=ConfigService.max_columns(),
            db_schema=ConfigService.db_schema(),
            realm_domains=ConfigService.realm_domains(),
        )
