"""Services package for formschema-mcp.

This package contains service classes that handle business logic and orchestration
for the formschema-mcp application. Services coordinate the schema_tools engine,
the identity registry and the response builders.

Main Components:
- ConfigService: Configuration and database connection management
- IdentityResolver: Decides whether a published form needs a schema build
- FormSchemaService: Build driver and schema lookups
"""

from .config_service import ConfigService
from .form_schema_service import FormSchemaService
from .registry import IdentityResolution, IdentityResolver, ResolutionKind

__all__ = [
    "ConfigService",
    "FormSchemaService",
    "IdentityResolution",
    "IdentityResolver",
    "ResolutionKind",
]
