"""Response builders for formschema-mcp.

This module contains builder classes that construct response models from the
schema engine's data classes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

from formschema_mcp.models import (
    BackingTableItem,
    ColumnItem,
    FormIdentityItem,
    ModelElementItem,
    PublishFormResult,
)
from formschema_mcp.schema_tools.definition import BackingTable
from formschema_mcp.schema_tools.models import FormIdentity, ModelElement


class PublishFormResultBuilder:
    """Builder for PublishFormResult objects."""

    @staticmethod
    def build(
        identity: FormIdentity,
        title: str,
        status: Literal["created", "unchanged"],
        elements: Sequence[ModelElement],
        tables: Sequence[BackingTable],
    ) -> PublishFormResult:
        return PublishFormResult(
            identity=FormIdentityItem(
                form_id=identity.form_id,
                model_version=identity.model_version,
                ui_version=identity.ui_version,
            ),
            title=title,
            status=status,
            schema_root_key=identity.schema_root_key(),
            tables=[t.qualified_name for t in tables],
            element_count=len(elements),
        )


class ModelElementItemBuilder:
    """Builder for ModelElementItem objects."""

    @staticmethod
    def build(element: ModelElement) -> ModelElementItem:
        return ModelElementItem(
            primary_key=element.primary_key,
            ordinal=element.ordinal,
            parent_key=element.parent_key,
            element_name=element.element_name,
            element_type=element.element_type.value,
            persist_as_schema=element.persist_as_schema,
            persist_as_table=element.persist_as_table,
            persist_as_column=element.persist_as_column,
        )


class BackingTableItemBuilder:
    """Builder for BackingTableItem objects."""

    @staticmethod
    def build(table: BackingTable) -> BackingTableItem:
        return BackingTableItem(
            schema_name=table.schema,
            table_name=table.name,
            owner_type=table.owner_type.value,
            columns=[ColumnItem(name=c.name, element_type=c.element_type.value) for c in table.columns],
        )
