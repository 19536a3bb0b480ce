"""FastMCP server implementation for formschema-mcp."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import dotenv
from fastmcp import FastMCP
from fastmcp.utilities.logging import get_logger
from starlette.requests import Request
from starlette.responses import JSONResponse

from formschema_mcp.schema_tools.mcp_tools import register_form_schema_tools
from formschema_mcp.services.service_manager import FormSchemaServiceManager

# Load environment variables
dotenv.load_dotenv()

_logger = get_logger(__name__)


# -- Context Manager for FormSchemaService initialization ----------------
@asynccontextmanager
async def lifespan(_mcp_instance: FastMCP) -> AsyncGenerator[None]:
    """FastMCP lifespan context manager for form schema service initialization."""
    manager = FormSchemaServiceManager.get_instance()
    try:
        _logger.info("Starting FormSchemaService initialization in background")
        manager.start_background_initialization()
        yield
    finally:
        _logger.info("Shutting down FormSchemaService during lifespan shutdown")
        await manager.shutdown()


mcp = FastMCP(
    instructions=(
        "This Model Context Protocol server publishes survey form definitions "
        "(XForms) and maps them onto relational tables. Use publish_form to "
        "create the tables of a form, then get_backing_tables and "
        "get_model_elements to locate where each field is stored."
    ),
    lifespan=lifespan,
)

# -- Tool Registration -------------------------------------------------------
register_form_schema_tools(mcp)


# -- Health Check ----------------------------------------------------------
@mcp.custom_route("/health", methods=["GET"])
async def health_check(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "healthy", "service": "mcp-server"})
