"""Custom exception hierarchy for the form schema engine.

This module defines all custom exceptions raised while turning a form
definition into a relational schema. The hierarchy separates problems with
the submitted definition, identity conflicts, and failures of the backing
store, so callers can present each one meaningfully.

Exception Categories:
- Definition errors for unusable raw form definitions
- Parse errors for structurally unacceptable definition trees
- Identity conflicts for redefinition of a published form
- Store errors for table creation, deletion and record writes
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import FormIdentity


class DefinitionErrorReason(Enum):
    """Why a raw form definition was rejected."""

    MISSING_XML = "missing_xml"
    BAD_PARSE = "bad_parse"
    ID_MISSING = "id_missing"
    ID_MALFORMED = "id_malformed"
    TITLE_MISSING = "title_missing"


class FormSchemaError(Exception):
    """Base exception for form schema operations.

    This is the root exception class for all schema building related errors.
    All other custom exceptions in this module inherit from this class.
    """


class FormDefinitionError(FormSchemaError):
    """Raised when the raw form definition cannot be used at all.

    This exception is raised before any schema work starts, such as when:
    - No definition text was supplied
    - The text is not a parseable XForm
    - The data model has no id attribute or usable xmlns
    - The form has no title and none was supplied
    """

    def __init__(self, message: str, reason: DefinitionErrorReason) -> None:
        super().__init__(message)
        self.reason = reason


class ParseError(FormSchemaError):
    """Raised when the definition tree cannot be mapped to a schema."""


class AmbiguousLeafError(ParseError):
    """Raised for an untyped, non-repeatable node without children."""

    def __init__(self, element_name: str) -> None:
        super().__init__(
            f"Field name: {element_name} appears to be a value field "
            "(it has no fields nested within it) but does not have a type."
        )
        self.element_name = element_name


class IdentityConflictError(FormSchemaError):
    """Raised when a published identity is resubmitted with different content."""

    def __init__(self, identity: FormIdentity) -> None:
        super().__init__(
            f"Form {identity.canonical_key()} already exists with a different definition"
        )
        self.identity = identity


class TableTooWideError(FormSchemaError):
    """Raised by the backing store when a table exceeds its width limit."""

    def __init__(self, schema: str, table: str, column_count: int) -> None:
        super().__init__(f"Table {schema}.{table} is too wide ({column_count} data columns)")
        self.schema = schema
        self.table = table
        self.column_count = column_count


class UnsplittableTableError(FormSchemaError):
    """Raised when an over-wide table cannot be subdivided any further."""


class StoreUnavailableError(FormSchemaError):
    """Raised when a backing store operation fails for reasons other than width."""
