"""Backing store adapter for form schemas.

This module provides the `BackingStore` protocol the schema engine consumes
and `SqlAlchemyBackingStore`, its implementation on SQLAlchemy Core. The
store creates and drops backing tables, reports existing table names for
collision-free naming, and keeps the identity registry and the recorded
element models in two registry tables of the same database.

Classes:
- BackingStore: Protocol of the store capabilities used by the engine
- SqlAlchemyBackingStore: SQLAlchemy Core implementation
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from fastmcp.utilities.logging import get_logger
import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeEngine

from .constants import Constants, ElementType
from .definition import BackingTable
from .exceptions import StoreUnavailableError, TableTooWideError
from .models import FormIdentity, IdentityRecord, ModelElement

_logger = get_logger("form_schema.persistence")

URI_LENGTH = 80
KEY_LENGTH = 160
NAME_LENGTH = 128

_SQL_TYPES: dict[ElementType, TypeEngine[Any]] = {
    ElementType.STRING: sa.String(255),
    ElementType.INTEGER: sa.BigInteger(),
    ElementType.DECIMAL: sa.Numeric(38, 10),
    ElementType.DATE: sa.Date(),
    ElementType.TIME: sa.Time(),
    ElementType.DATETIME: sa.DateTime(),
    ElementType.BOOLEAN: sa.Boolean(),
    ElementType.REF_BLOB: sa.LargeBinary(),
    ElementType.REF_TEXT: sa.Text(),
}


def sql_type_for(element_type: ElementType) -> TypeEngine[Any]:
    """Return the SQL column type storing values of ``element_type``."""
    try:
        return _SQL_TYPES[element_type]
    except KeyError:
        msg = f"Element type {element_type.value} has no column representation"
        raise ValueError(msg) from None


def _well_known_columns() -> list[sa.Column[Any]]:
    return [
        sa.Column("_URI", sa.String(URI_LENGTH), primary_key=True),
        sa.Column("_CREATOR_URI_USER", sa.String(URI_LENGTH), nullable=False),
        sa.Column("_CREATION_DATE", sa.DateTime(), nullable=False),
        sa.Column("_LAST_UPDATE_URI_USER", sa.String(URI_LENGTH)),
        sa.Column("_LAST_UPDATE_DATE", sa.DateTime(), nullable=False),
        sa.Column("_PARENT_AURI", sa.String(URI_LENGTH)),
        sa.Column("_ORDINAL_NUMBER", sa.BigInteger(), nullable=False),
        sa.Column("_TOP_LEVEL_AURI", sa.String(URI_LENGTH)),
    ]


class BackingStore(Protocol):
    """Store capabilities consumed by the schema engine."""

    @property
    def schema_name(self) -> str: ...

    def create_table(self, table: BackingTable) -> None: ...

    def delete_table(self, schema: str, name: str) -> None: ...

    def list_existing_names(self, schema: str) -> set[str]: ...

    def lookup_identity(self, identity: FormIdentity) -> IdentityRecord | None: ...

    def record_identity(self, record: IdentityRecord) -> None: ...

    def delete_identity(self, identity: FormIdentity) -> None: ...

    def put_model_elements(self, identity: FormIdentity, elements: Sequence[ModelElement]) -> None: ...

    def load_model_elements(self, schema_root_key: str) -> list[ModelElement]: ...


class SqlAlchemyBackingStore:
    """Backing store on a SQLAlchemy engine.

    Attributes:
        engine: SQLAlchemy engine of the backing database
        max_columns: Width limit of a table, in data columns
        schema_name: Database schema that form tables are created in
    """

    def __init__(self, engine: Engine, *, max_columns: int, db_schema: str | None = None) -> None:
        """Initialize the store and create the registry tables if missing.

        Args:
            engine: SQLAlchemy engine connected to the backing database
            max_columns: Width limit of a table, in data columns
            db_schema: Schema for form tables; None uses the connection default

        Raises:
            StoreUnavailableError: If the database cannot be inspected or prepared
        """
        self.engine = engine
        self.max_columns = max_columns
        try:
            default_schema = sa.inspect(engine).default_schema_name
        except SQLAlchemyError as exc:
            msg = f"Cannot inspect backing database: {exc}"
            raise StoreUnavailableError(msg) from exc
        self._default_schema = default_schema or "main"
        self._schema_name = db_schema or self._default_schema

        self._metadata = sa.MetaData()
        registry_schema = self._sa_schema(self._schema_name)
        self._identities = sa.Table(
            Constants.IDENTITY_TABLE_NAME,
            self._metadata,
            sa.Column("canonical_key", sa.String(512), primary_key=True),
            sa.Column("form_id", sa.String(512), nullable=False),
            sa.Column("model_version", sa.BigInteger()),
            sa.Column("ui_version", sa.BigInteger()),
            sa.Column("root_form_id", sa.String(512), nullable=False),
            sa.Column("title", sa.String(512), nullable=False),
            sa.Column("content_hash", sa.String(64), nullable=False),
            sa.Column("raw_definition", sa.Text(), nullable=False),
            sa.Column("schema_root_key", sa.String(URI_LENGTH), nullable=False),
            sa.Column("is_complete", sa.Boolean(), nullable=False, default=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            schema=registry_schema,
        )
        self._elements = sa.Table(
            Constants.DATA_MODEL_TABLE_NAME,
            self._metadata,
            sa.Column("primary_key", sa.String(KEY_LENGTH), primary_key=True),
            sa.Column("schema_root_key", sa.String(URI_LENGTH), nullable=False, index=True),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("ordinal", sa.BigInteger(), nullable=False),
            sa.Column("parent_key", sa.String(KEY_LENGTH), nullable=False),
            sa.Column("element_name", sa.String(512)),
            sa.Column("element_type", sa.String(64), nullable=False),
            sa.Column("persist_as_schema", sa.String(NAME_LENGTH), nullable=False),
            sa.Column("persist_as_table", sa.String(NAME_LENGTH), nullable=False),
            sa.Column("persist_as_column", sa.String(NAME_LENGTH)),
            schema=registry_schema,
        )
        try:
            self._metadata.create_all(engine, checkfirst=True)
        except SQLAlchemyError as exc:
            msg = f"Cannot create registry tables: {exc}"
            raise StoreUnavailableError(msg) from exc

    @property
    def schema_name(self) -> str:
        return self._schema_name

    # ---- tables -----------------------------------------------------------
    def create_table(self, table: BackingTable) -> None:
        """Create a backing table with the well-known and data columns.

        Raises:
            TableTooWideError: If the table exceeds the width limit
            StoreUnavailableError: If creation fails for any other reason
        """
        if table.data_column_count > self.max_columns:
            raise TableTooWideError(table.schema, table.name, table.data_column_count)

        sa_table = sa.Table(
            table.name,
            sa.MetaData(),
            *_well_known_columns(),
            *(sa.Column(c.name, sql_type_for(c.element_type)) for c in table.columns),
            schema=self._sa_schema(table.schema),
        )
        try:
            with self.engine.begin() as conn:
                sa_table.create(conn)
        except SQLAlchemyError as exc:
            if Constants.TOO_WIDE_PATTERN.search(str(exc)):
                raise TableTooWideError(
                    table.schema, table.name, table.data_column_count
                ) from exc
            msg = f"Failed to create table {table.qualified_name}: {exc}"
            raise StoreUnavailableError(msg) from exc
        _logger.debug(
            "Created table %s (%d data columns)", table.qualified_name, table.data_column_count
        )

    def delete_table(self, schema: str, name: str) -> None:
        """Drop a backing table if it exists."""
        sa_table = sa.Table(name, sa.MetaData(), schema=self._sa_schema(schema))
        try:
            with self.engine.begin() as conn:
                sa_table.drop(conn, checkfirst=True)
        except SQLAlchemyError as exc:
            msg = f"Failed to drop table {schema}.{name}: {exc}"
            raise StoreUnavailableError(msg) from exc
        _logger.debug("Dropped table %s.%s", schema, name)

    def list_existing_names(self, schema: str) -> set[str]:
        """Return the names of all tables currently present in ``schema``."""
        try:
            return set(sa.inspect(self.engine).get_table_names(schema=self._sa_schema(schema)))
        except SQLAlchemyError as exc:
            msg = f"Cannot list tables of schema {schema}: {exc}"
            raise StoreUnavailableError(msg) from exc

    # ---- identity registry ----------------------------------------------
    def lookup_identity(self, identity: FormIdentity) -> IdentityRecord | None:
        stmt = sa.select(self._identities).where(
            self._identities.c.canonical_key == identity.canonical_key()
        )
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            msg = f"Cannot look up form {identity.canonical_key()}: {exc}"
            raise StoreUnavailableError(msg) from exc
        if row is None:
            return None
        return IdentityRecord(
            identity=FormIdentity(row["form_id"], row["model_version"], row["ui_version"]),
            root_form_id=row["root_form_id"],
            title=row["title"],
            content_hash=row["content_hash"],
            raw_definition=row["raw_definition"],
            schema_root_key=row["schema_root_key"],
            is_complete=bool(row["is_complete"]),
        )

    def record_identity(self, record: IdentityRecord) -> None:
        identity = record.identity
        stmt = sa.insert(self._identities).values(
            canonical_key=identity.canonical_key(),
            form_id=identity.form_id,
            model_version=identity.model_version,
            ui_version=identity.ui_version,
            root_form_id=record.root_form_id,
            title=record.title,
            content_hash=record.content_hash,
            raw_definition=record.raw_definition,
            schema_root_key=record.schema_root_key,
            is_complete=record.is_complete,
            created_at=datetime.now(UTC),
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            msg = f"Cannot record form {identity.canonical_key()}: {exc}"
            raise StoreUnavailableError(msg) from exc

    def delete_identity(self, identity: FormIdentity) -> None:
        """Remove the identity record and any element model recorded for it."""
        key = identity.canonical_key()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    sa.delete(self._elements).where(
                        self._elements.c.schema_root_key == identity.schema_root_key()
                    )
                )
                conn.execute(
                    sa.delete(self._identities).where(self._identities.c.canonical_key == key)
                )
        except SQLAlchemyError as exc:
            msg = f"Cannot delete form {key}: {exc}"
            raise StoreUnavailableError(msg) from exc

    # ---- element model ----------------------------------------------------
    def put_model_elements(self, identity: FormIdentity, elements: Sequence[ModelElement]) -> None:
        """Record the element model and mark the identity complete, atomically."""
        root_key = identity.schema_root_key()
        rows = [
            {
                "primary_key": m.primary_key,
                "schema_root_key": root_key,
                "position": position,
                "ordinal": m.ordinal,
                "parent_key": m.parent_key,
                "element_name": m.element_name,
                "element_type": m.element_type.value,
                "persist_as_schema": m.persist_as_schema,
                "persist_as_table": m.persist_as_table,
                "persist_as_column": m.persist_as_column,
            }
            for position, m in enumerate(elements)
        ]
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    sa.delete(self._elements).where(self._elements.c.schema_root_key == root_key)
                )
                if rows:
                    conn.execute(sa.insert(self._elements), rows)
                conn.execute(
                    sa.update(self._identities)
                    .where(self._identities.c.canonical_key == identity.canonical_key())
                    .values(is_complete=True)
                )
        except SQLAlchemyError as exc:
            msg = f"Cannot record element model of {identity.canonical_key()}: {exc}"
            raise StoreUnavailableError(msg) from exc

    def load_model_elements(self, schema_root_key: str) -> list[ModelElement]:
        stmt = (
            sa.select(self._elements)
            .where(self._elements.c.schema_root_key == schema_root_key)
            .order_by(self._elements.c.position)
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            msg = f"Cannot load element model {schema_root_key}: {exc}"
            raise StoreUnavailableError(msg) from exc
        return [
            ModelElement(
                primary_key=row["primary_key"],
                ordinal=row["ordinal"],
                parent_key=row["parent_key"],
                element_name=row["element_name"],
                element_type=ElementType(row["element_type"]),
                persist_as_schema=row["persist_as_schema"],
                persist_as_table=row["persist_as_table"],
                persist_as_column=row["persist_as_column"],
            )
            for row in rows
        ]

    # ---- internals ---------------------------------------------------------
    def _sa_schema(self, schema: str) -> str | None:
        """Map a logical schema name to SQLAlchemy's (None for the default)."""
        return None if schema == self._default_schema else schema
