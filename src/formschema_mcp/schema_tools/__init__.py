"""Form schema engine for formschema-mcp.

Maps hierarchical survey form definitions onto relational tables. The engine
classifies every form node, walks the definition tree into a flat list of
model elements, allocates collision-free table and column names, and splits
tables that exceed the backing store's width limit onto linked phantom tables.

Main Components:
- parse_xform: XForm definition parser
- BuildSession: State of one schema build
- build_data_model / resolve_names: Tree walker and name resolution
- materialize_tables: Table creation with phantom-table splitting
- SqlAlchemyBackingStore: Backing store on SQLAlchemy Core
- Data Models: FormIdentity, FormNode, ModelElement, BackingTable
- Exceptions: Structured error handling for different failure modes

Example Usage:
    >>> import sqlalchemy as sa
    >>> from formschema_mcp.schema_tools import (
    ...     BuildSession, SqlAlchemyBackingStore, build_data_model,
    ...     materialize_tables, parse_xform, resolve_names,
    ... )
    >>> engine = sa.create_engine("sqlite+pysqlite:///:memory:")
    >>> store = SqlAlchemyBackingStore(engine, max_columns=500)
    >>> form = parse_xform(xml)
    >>> session = BuildSession(form.submission_identity.schema_root_key(), store.schema_name)
    >>> build_data_model(session, form.submission, form.table_prefix())
    >>> resolve_names(session, {store.schema_name: store.list_existing_names(store.schema_name)})
    >>> tables = materialize_tables(session, store, max_rounds=1000)
"""

from .constants import ElementType, FormDataType
from .definition import BackingTable, ColumnSpec, derive_backing_tables
from .exceptions import (
    AmbiguousLeafError,
    FormDefinitionError,
    FormSchemaError,
    IdentityConflictError,
    ParseError,
    StoreUnavailableError,
    TableTooWideError,
    UnsplittableTableError,
)
from .models import FormIdentity, FormNode, FormSchemaConfig, ModelElement
from .naming import NamingSet
from .persistence import BackingStore, SqlAlchemyBackingStore
from .session import BuildSession
from .splitter import materialize_tables, split_table
from .walker import build_data_model, resolve_names
from .xform import ParsedForm, parse_xform

__all__ = [
    "AmbiguousLeafError",
    "BackingStore",
    "BackingTable",
    "BuildSession",
    "ColumnSpec",
    "ElementType",
    "FormDataType",
    "FormDefinitionError",
    "FormIdentity",
    "FormNode",
    "FormSchemaConfig",
    "FormSchemaError",
    "IdentityConflictError",
    "ModelElement",
    "NamingSet",
    "ParseError",
    "ParsedForm",
    "SqlAlchemyBackingStore",
    "StoreUnavailableError",
    "TableTooWideError",
    "UnsplittableTableError",
    "build_data_model",
    "derive_backing_tables",
    "materialize_tables",
    "parse_xform",
    "resolve_names",
    "split_table",
]
