"""Phantom-table splitting of over-wide backing tables.

When the backing store rejects a table as too wide, the model is rearranged
so that part of the table's columns move onto a new "phantom" table that is
linked into the hierarchy like a nested group. Every split strictly reduces
the column count of the rejected table, or fails as unsplittable.

Functions:
- split_table(): Subdivide one rejected table
- materialize_tables(): Create every backing table, splitting until stable
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastmcp.utilities.logging import get_logger

from .constants import ElementType
from .definition import BackingTable, derive_backing_tables
from .exceptions import TableTooWideError, UnsplittableTableError
from .models import ModelElement
from .session import BuildSession

if TYPE_CHECKING:
    from .persistence import BackingStore

_logger = get_logger("form_schema.splitter")


def split_table(session: BuildSession, table: BackingTable, new_table_name: str) -> None:
    """Move part of ``table``'s columns onto the phantom table ``new_table_name``.

    The largest nested group holding columns of the table is moved whole when
    the split level has more than one member; this needs no new elements.
    Otherwise the level's fields are cut at the column midpoint and the upper
    half is reparented under a new PHANTOM element anchoring the new table.

    Args:
        session: Build session owning the element list
        table: The rejected table
        new_table_name: Fresh, unique name for the phantom table

    Raises:
        UnsplittableTableError: If no split can reduce the table's width
    """
    if not table.is_splittable:
        msg = f"Unable to subdivide non-form table {table.qualified_name}"
        raise UnsplittableTableError(msg)
    if _column_count(session, table) < 2:
        msg = f"Unable to subdivide instance table {table.qualified_name}"
        raise UnsplittableTableError(msg)

    anchor = _find_anchor(session, table)
    while True:
        groups, fields = _members(session, anchor, table)
        if len(groups) + len(fields) > 1:
            break
        if not groups:
            msg = f"Unable to subdivide instance table {table.qualified_name}: single field"
            raise UnsplittableTableError(msg)
        # a level holding a single group: descend until something can be divided
        anchor = groups[0]

    biggest: ModelElement | None = None
    biggest_count = 0
    for group in groups:
        count = _count_columns_in_table(session, group, table)
        if count > 0 and biggest_count <= count:
            biggest_count = count
            biggest = group
    if biggest is not None:
        _reassign(session, biggest, table, new_table_name)
        _logger.info(
            "Moved group %s (%d columns) from %s to phantom table %s",
            biggest.element_name,
            biggest_count,
            table.qualified_name,
            new_table_name,
        )
        return

    _split_fields(session, anchor, fields, table, new_table_name)


def materialize_tables(
    session: BuildSession, store: BackingStore, *, max_rounds: int
) -> list[BackingTable]:
    """Create every backing table of the session's model.

    Tables the store rejects as too wide are split once per round and the
    round is retried until every table exists. Created tables are recorded
    on the session so a failed build can tear them down.

    Returns:
        The final backing table set

    Raises:
        UnsplittableTableError: If a table cannot be split, or rounds run out
        StoreUnavailableError: If the store fails for any other reason
    """
    for round_number in range(1, max_rounds + 1):
        tables = derive_backing_tables(session.elements)
        rejected: list[BackingTable] = []
        for table in tables:
            key = (table.schema, table.name)
            if key in session.created_tables:
                continue
            try:
                store.create_table(table)
            except TableTooWideError:
                _logger.warning(
                    "Create failed -- assuming phantom table required %s (%d columns)",
                    table.qualified_name,
                    table.data_column_count,
                )
                rejected.append(table)
                continue
            session.created_tables.append(key)

        if not rejected:
            _logger.debug("All %d tables created after %d rounds", len(tables), round_number)
            return tables

        for table in rejected:
            existing = store.list_existing_names(table.schema)
            new_name = session.naming.allocate_fresh_unique_table_name(
                table.schema, table.name, existing
            )
            split_table(session, table, new_name)

    msg = f"Table layout did not stabilise after {max_rounds} split rounds"
    raise UnsplittableTableError(msg)


# ---- internals -------------------------------------------------------------
def _in_table(m: ModelElement, table: BackingTable) -> bool:
    return m.persist_as_schema == table.schema and m.persist_as_table == table.name


def _column_count(session: BuildSession, table: BackingTable) -> int:
    return sum(1 for m in session.elements if _in_table(m, table) and m.persist_as_column)


def _find_anchor(session: BuildSession, table: BackingTable) -> ModelElement:
    """Return the highest column-less element backed by ``table``."""
    anchor = next(
        (m for m in session.elements if m.persist_as_column is None and _in_table(m, table)),
        None,
    )
    if anchor is None:
        msg = f"Unable to locate model for backing table {table.qualified_name}"
        raise UnsplittableTableError(msg)
    while True:
        parent = session.find(anchor.parent_key)
        if parent is None or not _in_table(parent, table):
            return anchor
        anchor = parent


def _members(
    session: BuildSession, anchor: ModelElement, table: BackingTable
) -> tuple[list[ModelElement], list[ModelElement]]:
    """Split the anchor's same-table children into (groups, fields), by ordinal."""
    groups: list[ModelElement] = []
    fields: list[ModelElement] = []
    for m in sorted(session.children_of(anchor.primary_key), key=lambda e: e.ordinal):
        if not _in_table(m, table):
            continue
        if m.element_type is ElementType.GROUP:
            groups.append(m)
        else:
            fields.append(m)
    return groups, fields


def _count_columns_in_table(session: BuildSession, parent: ModelElement, table: BackingTable) -> int:
    count = sum(
        _count_columns_in_table(session, m, table)
        for m in session.children_of(parent.primary_key)
        if _in_table(m, table)
    )
    if parent.persist_as_column is not None:
        count += 1
    return count


def _reassign(
    session: BuildSession, parent: ModelElement, table: BackingTable, new_table_name: str
) -> None:
    for m in session.children_of(parent.primary_key):
        if _in_table(m, table):
            _reassign(session, m, table, new_table_name)
    parent.persist_as_table = new_table_name


def _split_fields(
    session: BuildSession,
    anchor: ModelElement,
    fields: list[ModelElement],
    table: BackingTable,
    new_table_name: str,
) -> None:
    """Cut the anchor's fields at the column midpoint onto a new phantom table."""
    if len(fields) < 2:
        msg = f"Unable to subdivide instance table {table.qualified_name}: too few fields"
        raise UnsplittableTableError(msg)
    counts = [_count_columns_in_table(session, m, table) for m in fields]
    half = sum(counts) // 2
    keep = 0
    kept_columns = 0
    for count in counts:
        if keep > 0 and kept_columns + count > half:
            break
        kept_columns += count
        keep += 1
    keep = min(keep, len(fields) - 1)

    midpoint = fields[keep - 1].ordinal
    moved = fields[keep:]
    phantom_key = session.next_phantom_key()
    insert_at = session.elements.index(moved[0])

    for new_ordinal, m in enumerate(moved, start=1):
        m.parent_key = phantom_key
        m.ordinal = new_ordinal
        _reassign(session, m, table, new_table_name)

    used = {m.ordinal for m in session.children_of(anchor.primary_key)}
    ordinal = midpoint + 1
    while ordinal in used:
        ordinal += 1

    session.elements.insert(
        insert_at,
        ModelElement(
            primary_key=phantom_key,
            ordinal=ordinal,
            parent_key=anchor.primary_key,
            element_name=None,
            element_type=ElementType.PHANTOM,
            persist_as_schema=table.schema,
            persist_as_table=new_table_name,
            persist_as_column=None,
        ),
    )
    _logger.info(
        "Split %s at ordinal %d: %d fields moved to phantom table %s",
        table.qualified_name,
        midpoint,
        len(moved),
        new_table_name,
    )
