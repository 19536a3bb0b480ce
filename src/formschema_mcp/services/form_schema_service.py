"""Form schema service for formschema-mcp.

This module provides the build driver that turns a published form definition
into a relational schema, and the consumer operations that report the element
model and backing tables of a published form.
"""

from __future__ import annotations

import threading
import weakref

from fastmcp.utilities.logging import get_logger
import sqlalchemy as sa

from formschema_mcp.builders.response_builders import PublishFormResultBuilder
from formschema_mcp.models import PublishFormResult
from formschema_mcp.schema_tools.definition import BackingTable, derive_backing_tables
from formschema_mcp.schema_tools.exceptions import FormSchemaError, IdentityConflictError
from formschema_mcp.schema_tools.models import (
    FormIdentity,
    FormSchemaConfig,
    IdentityRecord,
    ModelElement,
)
from formschema_mcp.schema_tools.naming import NamingSet
from formschema_mcp.schema_tools.persistence import BackingStore, SqlAlchemyBackingStore
from formschema_mcp.schema_tools.session import BuildSession
from formschema_mcp.schema_tools.splitter import materialize_tables
from formschema_mcp.schema_tools.utils import content_hash
from formschema_mcp.schema_tools.walker import build_data_model, resolve_names
from formschema_mcp.schema_tools.xform import ParsedForm, parse_xform
from formschema_mcp.services.registry import IdentityResolver, ResolutionKind

_logger = get_logger("form_schema.service")


class FormSchemaService:
    """Service for publishing forms and reading their relational schemas."""

    def __init__(
        self,
        engine: sa.Engine,
        config: FormSchemaConfig,
        store: BackingStore | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            engine: SQLAlchemy database engine
            config: Schema construction configuration
            store: Backing store; defaults to a SqlAlchemyBackingStore on ``engine``
        """
        self.engine = engine
        self.config = config
        self.store: BackingStore = store or SqlAlchemyBackingStore(
            engine, max_columns=config.max_columns, db_schema=config.db_schema
        )
        self.resolver = IdentityResolver(self.store)
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    # ---- publishing ---------------------------------------------------------
    def publish_form(self, xml: str | None, form_name: str | None = None) -> PublishFormResult:
        """Publish a form definition, building its schema if needed.

        Args:
            xml: Raw XForm definition
            form_name: Title to use when the definition carries none

        Returns:
            PublishFormResult with status 'created' or 'unchanged'

        Raises:
            FormDefinitionError: If the definition is unusable
            AmbiguousLeafError: If a leaf field has no type
            IdentityConflictError: If the identity was published with other content
            UnsplittableTableError: If a table cannot be brought under the width limit
            StoreUnavailableError: If the backing store fails
        """
        parsed = parse_xform(xml, form_name)
        identity = parsed.submission_identity
        with self._identity_lock(identity):
            resolution = self.resolver.resolve(identity, parsed.raw_definition)
            if resolution.kind is ResolutionKind.CONFLICTING:
                raise IdentityConflictError(identity)
            if resolution.kind is ResolutionKind.IDENTICAL:
                elements = self.get_model_elements(identity)
                return PublishFormResultBuilder.build(
                    identity,
                    parsed.title,
                    "unchanged",
                    elements,
                    derive_backing_tables(elements),
                )

            elements, tables = self._build(
                parsed, record_identity=resolution.kind is ResolutionKind.ABSENT
            )
            return PublishFormResultBuilder.build(
                identity, parsed.title, "created", elements, tables
            )

    def _build(
        self, parsed: ParsedForm, *, record_identity: bool
    ) -> tuple[list[ModelElement], list[BackingTable]]:
        identity = parsed.submission_identity
        _logger.info("Building schema for %s", identity.canonical_key())
        session = BuildSession(
            schema_root_key=identity.schema_root_key(),
            schema_name=self.store.schema_name,
            naming=NamingSet(self.config.max_table_name_length, self.config.max_column_name_length),
        )
        prefix = parsed.table_prefix(self.config.realm_domains)
        if record_identity:
            # Untyped leaves surface here, before anything is written
            build_data_model(session, parsed.submission, prefix)
            self.store.record_identity(
                IdentityRecord(
                    identity=identity,
                    root_form_id=parsed.root_identity.form_id,
                    title=parsed.title,
                    content_hash=content_hash(parsed.raw_definition),
                    raw_definition=parsed.raw_definition,
                    schema_root_key=session.schema_root_key,
                )
            )
        try:
            if not record_identity:
                build_data_model(session, parsed.submission, prefix)
            schema = session.schema_name
            resolve_names(session, {schema: self.store.list_existing_names(schema)})
            tables = materialize_tables(session, self.store, max_rounds=self.config.max_split_rounds)
            self.store.put_model_elements(identity, session.elements)
        except Exception:
            self._roll_back(session, identity)
            raise
        _logger.info(
            "Built schema for %s: %d elements in %d tables",
            identity.canonical_key(),
            len(session.elements),
            len(tables),
        )
        return session.elements, tables

    def _roll_back(self, session: BuildSession, identity: FormIdentity) -> None:
        """Delete every table created by ``session`` and the identity record."""
        _logger.warning(
            "Rolling back build of %s (%d tables)",
            identity.canonical_key(),
            len(session.created_tables),
        )
        for schema, name in reversed(session.created_tables):
            try:
                self.store.delete_table(schema, name)
            except FormSchemaError as exc:
                _logger.warning("Cleanup failed to drop %s.%s: %s", schema, name, exc)
        session.created_tables.clear()
        try:
            self.store.delete_identity(identity)
        except FormSchemaError as exc:
            _logger.warning("Cleanup failed to delete %s: %s", identity.canonical_key(), exc)

    def _identity_lock(self, identity: FormIdentity) -> threading.Lock:
        """Return the lock for ``identity``; it is dropped once no caller holds it."""
        key = identity.canonical_key()
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    # ---- schema consumers ---------------------------------------------------
    def get_model_elements(self, identity: FormIdentity) -> list[ModelElement]:
        """Return the recorded element model of a form, in model order.

        An identity that was never published, or whose build never completed,
        has no elements.
        """
        return self.store.load_model_elements(identity.schema_root_key())

    def get_backing_table_set(self, identity: FormIdentity) -> list[BackingTable]:
        """Return the physical tables backing a form's submissions."""
        return derive_backing_tables(self.get_model_elements(identity))
