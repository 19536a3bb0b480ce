"""formschema-mcp package for mapping survey form definitions onto relational tables.

Provides Model Context Protocol (FastMCP) server capabilities for publishing
XForm definitions and reporting the tables and columns that store their data.
"""

from formschema_mcp.models import (
    BackingTableItem,
    ModelElementItem,
    PublishFormResult,
)
from formschema_mcp.services import ConfigService, FormSchemaService

__all__ = [  # noqa: RUF022
    # Core models
    "BackingTableItem",
    "ModelElementItem",
    "PublishFormResult",
    # Services
    "ConfigService",
    "FormSchemaService",
]
