"""MCP tool registration for form schema features.

Exposes a `register_form_schema_tools` function that attaches tools to a
FastMCP instance while delegating actual logic to the service obtained via
`FormSchemaServiceManager`.
"""

from __future__ import annotations

from typing import Annotated

from fastmcp import Context, FastMCP
from fastmcp.utilities.logging import get_logger
from pydantic import Field

from formschema_mcp.builders.response_builders import (
    BackingTableItemBuilder,
    ModelElementItemBuilder,
)
from formschema_mcp.models import (
    BackingTableItem,
    InitStatus,
    ModelElementItem,
    PublishFormResult,
)
from formschema_mcp.schema_tools.exceptions import FormSchemaError
from formschema_mcp.schema_tools.models import FormIdentity
from formschema_mcp.schema_tools.utils import substitute_slashes
from formschema_mcp.services.form_schema_service import FormSchemaService
from formschema_mcp.services.service_manager import FormSchemaServiceManager

_logger = get_logger(__name__)

FormIdArg = Annotated[
    str, Field(description="Form id as published; '/' may be given literally")
]
ModelVersionArg = Annotated[int | None, Field(description="Data model version, if any")]
UiVersionArg = Annotated[int | None, Field(description="User interface version, if any")]


def register_form_schema_tools(
    mcp: FastMCP, manager: FormSchemaServiceManager | None = None
) -> None:
    """Register form publishing and schema lookup tools."""

    mgr = manager or FormSchemaServiceManager.get_instance()

    async def _service(ctx: Context) -> FormSchemaService:
        try:
            return await mgr.get_form_schema_service()
        except (RuntimeError, ValueError) as exc:
            await ctx.error(f"Form schema service not ready: {exc}")
            raise

    @mcp.tool
    async def publish_form(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        xml: Annotated[str, Field(description="Complete XForm definition document")],
        form_name: Annotated[
            str | None,
            Field(description="Title to use when the definition has no <h:title>"),
        ] = None,
    ) -> PublishFormResult:
        """Publish a form definition and create the tables that store its submissions.

        Publishing the same definition again is a no-op (status 'unchanged'). A
        different definition under an already published id and version is rejected.
        """
        service = await _service(ctx)
        try:
            result = service.publish_form(xml, form_name)
        except FormSchemaError as exc:
            await ctx.error(str(exc))
            raise
        _logger.info(
            "Published %s (%s, %d tables)",
            result.identity.form_id,
            result.status,
            len(result.tables),
        )
        return result

    @mcp.tool
    async def get_model_elements(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        form_id: FormIdArg,
        model_version: ModelVersionArg = None,
        ui_version: UiVersionArg = None,
    ) -> list[ModelElementItem]:
        """List the model elements of a published form in model order.

        Each element maps a form field, group or synthetic element to its
        backing table and column. Unknown forms have no elements.
        """
        service = await _service(ctx)
        identity = FormIdentity(substitute_slashes(form_id), model_version, ui_version)
        elements = service.get_model_elements(identity)
        return [ModelElementItemBuilder.build(m) for m in elements]

    @mcp.tool
    async def get_backing_tables(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        form_id: FormIdArg,
        model_version: ModelVersionArg = None,
        ui_version: UiVersionArg = None,
    ) -> list[BackingTableItem]:
        """List the physical tables that store a published form's submissions."""
        service = await _service(ctx)
        identity = FormIdentity(substitute_slashes(form_id), model_version, ui_version)
        return [BackingTableItemBuilder.build(t) for t in service.get_backing_table_set(identity)]

    @mcp.tool
    async def get_init_status() -> InitStatus:  # pyright: ignore[reportUnusedFunction]
        """Report whether the form schema service is ready."""
        state = mgr.status()
        descriptions = {
            "READY": "Service is ready",
            "FAILED": "Initialization failed; check the database URL",
            "STOPPED": "Service has been stopped",
        }
        return InitStatus(
            phase=state.phase.name,
            attempts=state.attempts,
            started_at=state.started_at,
            completed_at=state.completed_at,
            error_message=state.error_message,
            description=descriptions.get(state.phase.name, "Initialization in progress"),
        )
