"""Backing table derivation from a model element list.

Groups model elements by the (schema, table) they persist into and computes
the column set of every backing table. The result is what the backing store
is asked to materialize, and what consumers use to locate submission rows.

Classes:
- ColumnSpec: One data column of a backing table
- BackingTable: One physical table implied by the element list

Functions:
- derive_backing_tables(): Compute the ordered backing table set
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Final

from .constants import SPLITTABLE_OWNER_TYPES, ElementType
from .models import ModelElement

# Fixed data columns of tables owned by auxiliary kinds
AUXILIARY_COLUMNS: Final[dict[ElementType, tuple[tuple[str, ElementType], ...]]] = {
    ElementType.SELECT_MULTI: (("VALUE", ElementType.STRING),),
    ElementType.BINARY: (
        ("UNROOTED_FILE_PATH", ElementType.STRING),
        ("CONTENT_TYPE", ElementType.STRING),
    ),
    ElementType.VERSIONED_BINARY: (
        ("CONTENT_LENGTH", ElementType.INTEGER),
        ("CONTENT_HASH", ElementType.STRING),
    ),
    ElementType.VERSIONED_BINARY_CONTENT_REF_BLOB: (("PART", ElementType.INTEGER),),
    ElementType.REF_BLOB: (("VALUE", ElementType.REF_BLOB),),
    ElementType.LONG_STRING_REF_TEXT: (("PART", ElementType.INTEGER),),
    ElementType.REF_TEXT: (("VALUE", ElementType.REF_TEXT),),
}


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """A data column and the element kind that determines its SQL type."""

    name: str
    element_type: ElementType


@dataclass
class BackingTable:
    """A physical table implied by the model.

    Attributes:
        schema: Database schema name
        name: Table name
        owner_type: Kind of the highest column-less element backed by this table
        columns: Data columns, excluding the well-known columns
    """

    schema: str
    name: str
    owner_type: ElementType
    columns: list[ColumnSpec] = field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"

    @property
    def data_column_count(self) -> int:
        return len(self.columns)

    @property
    def is_splittable(self) -> bool:
        return self.owner_type in SPLITTABLE_OWNER_TYPES


def derive_backing_tables(elements: Iterable[ModelElement]) -> list[BackingTable]:
    """Derive the backing tables of a model, in first-appearance order.

    Args:
        elements: Model elements with resolved table and column names

    Returns:
        One BackingTable per distinct (schema, table) pair
    """
    elements = list(elements)
    by_key = {m.primary_key: m for m in elements}
    members: dict[tuple[str, str], list[ModelElement]] = {}
    for m in elements:
        members.setdefault((m.persist_as_schema, m.persist_as_table), []).append(m)

    tables: list[BackingTable] = []
    for (schema, name), backed in members.items():
        owner = next((m for m in backed if _owns_table(m, by_key)), backed[0])
        table = BackingTable(schema=schema, name=name, owner_type=owner.element_type)
        for column, element_type in AUXILIARY_COLUMNS.get(owner.element_type, ()):
            table.columns.append(ColumnSpec(column, element_type))
        table.columns.extend(
            ColumnSpec(m.persist_as_column, m.element_type)
            for m in backed
            if m.persist_as_column is not None
        )
        tables.append(table)
    return tables


def _owns_table(m: ModelElement, by_key: dict[str, ModelElement]) -> bool:
    """True for the column-less element whose parent lives in another table."""
    if m.persist_as_column is not None:
        return False
    parent = by_key.get(m.parent_key)
    return parent is None or (parent.persist_as_schema, parent.persist_as_table) != (
        m.persist_as_schema,
        m.persist_as_table,
    )
