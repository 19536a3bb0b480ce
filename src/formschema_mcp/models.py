"""Pydantic models for MCP tool I/O.

Minimal, task-focused models used by the MCP server tools and builders.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# -----------------------
# MCP Response Models
# -----------------------


class FormIdentityItem(BaseModel):
    """Identity triple of a published form."""

    form_id: str = Field(description="Form id, with '/' substituted by '&#47;'")
    model_version: int | None = Field(default=None, description="Data model version")
    ui_version: int | None = Field(default=None, description="User interface version")


class PublishFormResult(BaseModel):
    """Outcome of publishing a form definition."""

    identity: FormIdentityItem = Field(description="Submission identity the schema is keyed on")
    title: str = Field(description="Form title")
    status: Literal["created", "unchanged"] = Field(
        description="'created' for a new schema, 'unchanged' when the form was already published"
    )
    schema_root_key: str = Field(description="Parent key of the top-level model elements")
    tables: list[str] = Field(description="Backing tables as 'schema.table', in model order")
    element_count: int = Field(description="Number of model elements in the schema")


class ModelElementItem(BaseModel):
    """One physical element of a form's relational schema."""

    primary_key: str = Field(description="Unique element key")
    ordinal: int = Field(description="1-based position among siblings")
    parent_key: str = Field(description="Key of the owning element or the schema root")
    element_name: str | None = Field(default=None, description="Form field name, if any")
    element_type: str = Field(description="Physical element kind (STRING, GROUP, PHANTOM, ...)")
    persist_as_schema: str = Field(description="Database schema of the backing table")
    persist_as_table: str = Field(description="Backing table name")
    persist_as_column: str | None = Field(
        default=None, description="Backing column name; null for column-less kinds"
    )


class ColumnItem(BaseModel):
    """Data column of a backing table."""

    name: str = Field(description="Column name")
    element_type: str = Field(description="Element kind that determines the SQL type")


class BackingTableItem(BaseModel):
    """Physical table backing part of a form's submissions."""

    schema_name: str = Field(description="Database schema name")
    table_name: str = Field(description="Table name")
    owner_type: str = Field(description="Element kind owning the table")
    columns: list[ColumnItem] = Field(description="Data columns, excluding well-known columns")


class InitStatus(BaseModel):
    """Initialization status for form schema service readiness."""

    phase: Literal["IDLE", "STARTING", "RUNNING", "READY", "FAILED", "STOPPED"]
    attempts: int = 0
    started_at: float | None = None
    completed_at: float | None = None
    error_message: str | None = None
    description: str | None = Field(default=None, description="Short status description")
