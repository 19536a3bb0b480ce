"""Recursive construction of the relational model from a form definition tree.

The walker visits the definition tree depth-first, classifies every node,
and emits one anchor `ModelElement` per node plus the auxiliary elements a
composite type expands into. Table and column names are proposed to the
session's naming set as placeholders and resolved later in one pass.

Functions:
- build_data_model(): Walk a form tree into the session's element list
- resolve_names(): Replace placeholders with final names
"""

from __future__ import annotations

from collections.abc import Collection, Mapping

from fastmcp.utilities.logging import get_logger

from .classifier import classify
from .constants import BINARY_CHAIN, GEOPOINT_EXPANSION, AuxType, ColumnShape, Constants, ElementType
from .models import FormNode, ModelElement
from .session import BuildSession

_logger = get_logger("form_schema.walker")


def build_data_model(session: BuildSession, root: FormNode, table_prefix: str) -> list[ModelElement]:
    """Build the placeholder-named element list for a form.

    The root is treated as a non-repeating group backed by the core table.
    After the walk, the long-text reference table and its backing text table
    are appended once, parented at the schema root.

    Args:
        session: Build session receiving the elements
        root: Submission element of the form definition
        table_prefix: Prefix for every table name of this form

    Returns:
        The session's element list

    Raises:
        AmbiguousLeafError: If any node is an untyped, childless, non-repeating leaf
    """
    core_table = session.naming.propose_table_name(
        session.schema_name, table_prefix, "", Constants.CORE_TABLE_SUFFIX
    )
    _construct(
        session,
        root,
        parent_key=session.schema_root_key,
        ordinal=1,
        table_prefix=table_prefix,
        group_prefix="",
        table=core_table,
    )
    _emit_long_text_tables(session, table_prefix)
    _logger.debug("Constructed %d model elements", len(session.elements))
    return session.elements


def resolve_names(session: BuildSession, existing_tables: Mapping[str, Collection[str]]) -> None:
    """Resolve every placeholder in the session's elements to its final name."""
    naming = session.naming
    naming.resolve_all(existing_tables)
    for m in session.elements:
        table_placeholder = m.persist_as_table
        m.persist_as_column = naming.resolve_column_placeholder(
            table_placeholder, m.persist_as_column
        )
        m.persist_as_table = naming.resolve_table_placeholder(table_placeholder)


# ---- internals -------------------------------------------------------------
def _construct(
    session: BuildSession,
    node: FormNode,
    *,
    parent_key: str,
    ordinal: int,
    table_prefix: str,
    group_prefix: str,
    table: str,
) -> None:
    _logger.debug(
        "processing node: %s type: %s repeatable: %s",
        node.name,
        node.data_type.value,
        node.repeatable,
    )
    naming = session.naming
    schema = session.schema_name

    column: str | None = naming.propose_column_name(table, group_prefix, node.name)
    classification = classify(
        node.data_type,
        is_repeatable=node.repeatable,
        child_count=len(node.children),
        element_name=node.name,
    )
    element_type = classification.element_type

    if classification.shape is not ColumnShape.SINGLE_COLUMN:
        naming.remove_column_proposal(table, column)
        column = None
    if element_type is ElementType.BINARY:
        table = naming.propose_table_name(
            schema, table_prefix, group_prefix, node.name + Constants.BINARY_SUFFIX
        )
    elif element_type in {ElementType.SELECT_MULTI, ElementType.REPEAT}:
        table = naming.propose_table_name(schema, table_prefix, group_prefix, node.name)

    anchor = session.add(
        ModelElement(
            primary_key=session.next_element_key(),
            ordinal=ordinal,
            parent_key=parent_key,
            element_name=node.name,
            element_type=element_type,
            persist_as_schema=schema,
            persist_as_table=table,
            persist_as_column=column,
        )
    )

    if element_type is ElementType.BINARY:
        _emit_binary_chain(session, anchor, table_prefix, group_prefix)
    elif element_type is ElementType.GEOPOINT:
        _emit_geopoint_columns(session, anchor, group_prefix)
    elif element_type is ElementType.GROUP:
        # the root group does not contribute to column names
        if parent_key != session.schema_root_key:
            group_prefix = f"{group_prefix}_{node.name}" if group_prefix else node.name
        _construct_children(session, node, anchor, table_prefix, group_prefix)
    elif element_type is ElementType.REPEAT:
        _construct_children(session, node, anchor, table_prefix, "")


def _construct_children(
    session: BuildSession,
    node: FormNode,
    anchor: ModelElement,
    table_prefix: str,
    group_prefix: str,
) -> None:
    # Begin and end markers of one nested node appear as consecutive siblings
    # with the same name; only the first is visited.
    prior: FormNode | None = None
    ordinal = 0
    for child in node.children:
        if prior is not None and prior.name == child.name:
            prior = child
            continue
        ordinal += 1
        _construct(
            session,
            child,
            parent_key=anchor.primary_key,
            ordinal=ordinal,
            table_prefix=table_prefix,
            group_prefix=group_prefix,
            table=anchor.persist_as_table,
        )
        prior = child


def _emit_binary_chain(
    session: BuildSession, anchor: ModelElement, table_prefix: str, group_prefix: str
) -> None:
    """Emit the versioned-content, content-ref and raw-blob tables of a binary field."""
    name = anchor.element_name or ""
    parent = anchor
    for suffix, aux, element_type in BINARY_CHAIN:
        table = session.naming.propose_table_name(
            session.schema_name, table_prefix, group_prefix, name + suffix
        )
        parent = session.add(
            ModelElement(
                primary_key=session.next_element_key(aux),
                ordinal=1,
                parent_key=parent.primary_key,
                element_name=name,
                element_type=element_type,
                persist_as_schema=session.schema_name,
                persist_as_table=table,
                persist_as_column=None,
            )
        )


def _emit_geopoint_columns(session: BuildSession, anchor: ModelElement, group_prefix: str) -> None:
    """Emit the latitude, longitude, altitude and accuracy columns of a geopoint."""
    name = anchor.element_name or ""
    for suffix, aux, ordinal in GEOPOINT_EXPANSION:
        column = session.naming.propose_column_name(anchor.persist_as_table, group_prefix, name + suffix)
        session.add(
            ModelElement(
                primary_key=session.next_element_key(aux),
                ordinal=ordinal,
                parent_key=anchor.primary_key,
                element_name=name,
                element_type=ElementType.DECIMAL,
                persist_as_schema=session.schema_name,
                persist_as_table=anchor.persist_as_table,
                persist_as_column=column,
            )
        )


def _emit_long_text_tables(session: BuildSession, table_prefix: str) -> None:
    naming = session.naming
    schema = session.schema_name
    session.element_count += 1  # the long-text tables get their own element number

    ref_table = naming.propose_table_name(schema, table_prefix, "", Constants.LONG_STRING_REF_SUFFIX)
    ref = session.add(
        ModelElement(
            primary_key=session.next_element_key(AuxType.LONG_STRING_REF),
            ordinal=2,
            parent_key=session.schema_root_key,
            element_name=None,
            element_type=ElementType.LONG_STRING_REF_TEXT,
            persist_as_schema=schema,
            persist_as_table=ref_table,
        )
    )
    text_table = naming.propose_table_name(schema, table_prefix, "", Constants.REF_TEXT_SUFFIX)
    session.add(
        ModelElement(
            primary_key=session.next_element_key(AuxType.REF_TEXT),
            ordinal=1,
            parent_key=ref.primary_key,
            element_name=None,
            element_type=ElementType.REF_TEXT,
            persist_as_schema=schema,
            persist_as_table=text_table,
        )
    )
