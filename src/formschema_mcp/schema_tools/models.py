"""Data models for the form schema engine.

This module contains the data classes used to represent a form definition
tree, its identity, and the relational model derived from it.

Models:
- FormIdentity: (form id, model version, ui version) triple naming a schema
- FormNode: One node of a hierarchical form definition
- ModelElement: One physical element of the derived relational schema
- IdentityRecord: Registry entry recorded for a published identity
- FormSchemaConfig: Tunables for schema construction
"""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib

from .constants import Constants, ElementType, FormDataType


@dataclass(frozen=True)
class FormIdentity:
    """Identity of a form's data definition.

    Two identities denote the same schema iff all three fields are equal.

    Attributes:
        form_id: Form identifier with slashes substituted
        model_version: Optional data model version
        ui_version: Optional user interface version
    """

    form_id: str
    model_version: int | None = None
    ui_version: int | None = None

    def canonical_key(self) -> str:
        """Return the canonical string used to key registry records and locks."""
        version = "" if self.model_version is None else str(self.model_version)
        ui_version = "" if self.ui_version is None else str(self.ui_version)
        return f"{self.form_id}|{version}|{ui_version}"

    def schema_root_key(self) -> str:
        """Return the deterministic key of the schema root for this identity."""
        digest = hashlib.md5(self.canonical_key().encode("utf-8")).hexdigest()  # noqa: S324
        return f"md5:{digest}"


@dataclass
class FormNode:
    """A node in a hierarchical form definition.

    Attributes:
        name: Declared element name
        data_type: Declared semantic type (NULL when untyped)
        repeatable: True if the node may occur many times per submission
        children: Ordered child nodes
        attributes: Attributes on the node (id, version, uiVersion, ...)
    """

    name: str
    data_type: FormDataType = FormDataType.NULL
    repeatable: bool = False
    children: list[FormNode] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)

    def attribute(self, name: str) -> str | None:
        return self.attributes.get(name)


@dataclass
class ModelElement:
    """One physical element of the relational schema derived from a form.

    Structural kinds (GROUP, REPEAT, PHANTOM) and kinds that own their own
    table (SELECT_MULTI, BINARY, GEOPOINT) have no column. During a build,
    ``persist_as_table`` and ``persist_as_column`` hold naming placeholders
    until the allocator resolves them.

    Attributes:
        primary_key: Globally unique key of this element
        ordinal: 1-based position among siblings sharing ``parent_key``
        parent_key: Key of the owning element, or the schema root key
        element_name: Declared name of the form node, None for synthetic elements
        element_type: Physical element kind
        persist_as_schema: Database schema of the backing table
        persist_as_table: Backing table name (or placeholder mid-build)
        persist_as_column: Backing column name, None for column-less kinds
    """

    primary_key: str
    ordinal: int
    parent_key: str
    element_name: str | None
    element_type: ElementType
    persist_as_schema: str
    persist_as_table: str
    persist_as_column: str | None = None


@dataclass
class IdentityRecord:
    """Registry entry for a published form identity.

    Attributes:
        identity: The submission identity the schema is keyed on
        root_form_id: Form id of the definition's root element
        title: Human-readable form title
        content_hash: SHA-256 hex digest of the raw definition
        raw_definition: The raw definition text as submitted
        schema_root_key: Key that top-level model elements point at
        is_complete: True once the element model has been recorded
    """

    identity: FormIdentity
    root_form_id: str
    title: str
    content_hash: str
    raw_definition: str
    schema_root_key: str
    is_complete: bool = False


@dataclass
class FormSchemaConfig:
    """Configuration for schema construction.

    Attributes:
        max_columns: Width limit of a backing table, in data columns
        db_schema: Database schema to create tables in (None: connection default)
        realm_domains: Organisation domains stripped from the table prefix
        max_table_name_length: Upper bound on generated table names
        max_column_name_length: Upper bound on generated column names
        max_split_rounds: Safety bound on create/split retry rounds
    """

    max_columns: int = Constants.DEFAULT_MAX_COLUMNS
    db_schema: str | None = None
    realm_domains: list[str] = field(default_factory=list)
    max_table_name_length: int = Constants.DEFAULT_MAX_TABLE_NAME_LENGTH
    max_column_name_length: int = Constants.DEFAULT_MAX_COLUMN_NAME_LENGTH
    max_split_rounds: int = Constants.DEFAULT_MAX_SPLIT_ROUNDS
