"""Two-phase identifier allocation for tables and columns.

Names are proposed while the definition tree is walked and resolved once,
after the walk, against both the other proposals of the same build and the
names already present in the backing store. Proposals hand out opaque
placeholders so that later removals never leave orphaned names behind.

Classes:
- NamingSet: Placeholder registry and resolver for one schema build
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field

from fastmcp.utilities.logging import get_logger

from .constants import Constants
from .utils import join_fragments, shorten_identifier

_logger = get_logger("form_schema.naming")

# Reserved column names on every backing table
WELL_KNOWN_COLUMNS: tuple[str, ...] = (
    "_URI",
    "_CREATOR_URI_USER",
    "_CREATION_DATE",
    "_LAST_UPDATE_URI_USER",
    "_LAST_UPDATE_DATE",
    "_PARENT_AURI",
    "_ORDINAL_NUMBER",
    "_TOP_LEVEL_AURI",
)


@dataclass
class _TableProposal:
    schema: str
    candidate: str
    columns: dict[str, str] = field(default_factory=dict)  # placeholder -> candidate
    resolved: str | None = None
    resolved_columns: dict[str, str] = field(default_factory=dict)


class NamingSet:
    """Placeholder set mapping proposed names to final, collision-free names.

    Table placeholders are scoped to a database schema; column placeholders
    are scoped to their table placeholder. Resolution is deterministic given
    the same proposal order and store contents.

    Attributes:
        max_table_name_length: Upper bound on resolved table names
        max_column_name_length: Upper bound on resolved column names
    """

    def __init__(
        self,
        max_table_name_length: int = Constants.DEFAULT_MAX_TABLE_NAME_LENGTH,
        max_column_name_length: int = Constants.DEFAULT_MAX_COLUMN_NAME_LENGTH,
    ) -> None:
        self.max_table_name_length = max_table_name_length
        self.max_column_name_length = max_column_name_length
        self._tables: dict[str, _TableProposal] = {}
        self._allocated: dict[str, set[str]] = {}  # schema -> upper-cased names in use
        self._counter = 0
        self._resolved = False

    # ---- proposals ---------------------------------------------------------
    def propose_table_name(
        self, schema: str, base_prefix: str, group_prefix: str, suffix: str
    ) -> str:
        """Register a table name proposal and return its placeholder."""
        self._counter += 1
        placeholder = f"table:{self._counter:08d}"
        candidate = join_fragments((base_prefix, group_prefix, suffix))
        self._tables[placeholder] = _TableProposal(schema=schema, candidate=candidate)
        self._resolved = False
        return placeholder

    def propose_column_name(self, table_placeholder: str, group_prefix: str, leaf_name: str) -> str:
        """Register a column name proposal on a proposed table."""
        proposal = self._table(table_placeholder)
        self._counter += 1
        placeholder = f"column:{self._counter:08d}"
        proposal.columns[placeholder] = join_fragments((group_prefix, leaf_name))
        self._resolved = False
        return placeholder

    def remove_column_proposal(self, table_placeholder: str, column_placeholder: str | None) -> None:
        """Withdraw a column proposal, e.g. when a node turns out to be structural."""
        if column_placeholder is None:
            return
        self._table(table_placeholder).columns.pop(column_placeholder, None)

    # ---- resolution --------------------------------------------------------
    def resolve_all(self, existing_tables: Mapping[str, Collection[str]]) -> dict[str, str]:
        """Resolve every placeholder to a final name.

        Args:
            existing_tables: Table names already present in the store, per schema

        Returns:
            Mapping of table placeholder to resolved table name
        """
        self._allocated = {
            schema: {name.upper() for name in names} for schema, names in existing_tables.items()
        }
        resolved: dict[str, str] = {}
        for placeholder, proposal in self._tables.items():
            used = self._allocated.setdefault(proposal.schema, set())
            name = self._dedupe(proposal.candidate, used, self.max_table_name_length)
            used.add(name.upper())
            proposal.resolved = name
            resolved[placeholder] = name

            taken = {c.upper() for c in WELL_KNOWN_COLUMNS}
            proposal.resolved_columns = {}
            for column_placeholder, candidate in proposal.columns.items():
                column = self._dedupe(candidate, taken, self.max_column_name_length)
                taken.add(column.upper())
                proposal.resolved_columns[column_placeholder] = column
            _logger.debug(
                "Resolved %s -> %s (%d columns)", placeholder, name, len(proposal.resolved_columns)
            )
        self._resolved = True
        return resolved

    def resolve_table_placeholder(self, table_placeholder: str) -> str:
        proposal = self._table(table_placeholder)
        if not self._resolved or proposal.resolved is None:
            msg = f"Table placeholder {table_placeholder} has not been resolved"
            raise RuntimeError(msg)
        return proposal.resolved

    def resolve_column_placeholder(
        self, table_placeholder: str, column_placeholder: str | None
    ) -> str | None:
        if column_placeholder is None:
            return None
        proposal = self._table(table_placeholder)
        try:
            return proposal.resolved_columns[column_placeholder]
        except KeyError:
            msg = f"Column placeholder {column_placeholder} is not registered on {table_placeholder}"
            raise RuntimeError(msg) from None

    def allocate_fresh_unique_table_name(
        self, schema: str, colliding_base_name: str, existing_tables: Collection[str]
    ) -> str:
        """Allocate a new table name derived from ``colliding_base_name``.

        The name is unique against the store snapshot and every name this
        naming set has already handed out for ``schema``.
        """
        used = self._allocated.setdefault(schema, set())
        used.update(name.upper() for name in existing_tables)
        used.add(colliding_base_name.upper())
        name = self._dedupe(colliding_base_name, used, self.max_table_name_length)
        used.add(name.upper())
        return name

    # ---- internals ---------------------------------------------------------
    def _table(self, table_placeholder: str) -> _TableProposal:
        try:
            return self._tables[table_placeholder]
        except KeyError:
            msg = f"Unknown table placeholder {table_placeholder}"
            raise KeyError(msg) from None

    @staticmethod
    def _dedupe(candidate: str, used: Collection[str], max_length: int) -> str:
        name = shorten_identifier(candidate, max_length)
        if name.upper() not in used:
            return name
        n = 2
        while True:
            name = shorten_identifier(candidate, max_length, f"_{n}")
            if name.upper() not in used:
                return name
            n += 1
