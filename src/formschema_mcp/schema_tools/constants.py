"""Constants and enums for the form schema engine.

This module contains the naming limits, reserved ordinals, well-known column
names and the closed vocabularies (declared form data types, physical element
kinds) used throughout the schema mapping engine.
"""

from __future__ import annotations

from enum import Enum
import re
from typing import Final


class Constants:
    """Configuration constants for the schema mapping engine."""

    # Defaults
    DEFAULT_MAX_COLUMNS: Final[int] = 500
    DEFAULT_MAX_TABLE_NAME_LENGTH: Final[int] = 63
    DEFAULT_MAX_COLUMN_NAME_LENGTH: Final[int] = 63
    DEFAULT_MAX_SPLIT_ROUNDS: Final[int] = 1000

    # Form identity
    FORM_ID_ATTRIBUTE_NAME: Final[str] = "id"
    VERSION_ATTRIBUTE_NAME: Final[str] = "version"
    UI_VERSION_ATTRIBUTE_NAME: Final[str] = "uiVersion"
    FORWARD_SLASH: Final[str] = "/"
    FORWARD_SLASH_SUBSTITUTION: Final[str] = "&#47;"

    # Table name suffixes
    CORE_TABLE_SUFFIX: Final[str] = "CORE"
    LONG_STRING_REF_SUFFIX: Final[str] = "STRING_REF"
    REF_TEXT_SUFFIX: Final[str] = "STRING_TXT"
    BINARY_SUFFIX: Final[str] = "_BN"
    VERSIONED_BINARY_SUFFIX: Final[str] = "_VBN"
    BINARY_REF_SUFFIX: Final[str] = "_REF"
    BINARY_BLOB_SUFFIX: Final[str] = "_BLB"

    # Geopoint expansion: (column suffix, reserved ordinal)
    GEOPOINT_LATITUDE_ORDINAL_NUMBER: Final[int] = 1
    GEOPOINT_LONGITUDE_ORDINAL_NUMBER: Final[int] = 2
    GEOPOINT_ALTITUDE_ORDINAL_NUMBER: Final[int] = 3
    GEOPOINT_ACCURACY_ORDINAL_NUMBER: Final[int] = 4

    # Identifier sanitation
    ILLEGAL_NAME_CHARS: Final[re.Pattern[str]] = re.compile(r"[^A-Z0-9_]")
    REPEATED_UNDERSCORES: Final[re.Pattern[str]] = re.compile(r"_+")
    NON_ALPHANUMERIC: Final[re.Pattern[str]] = re.compile(r"[^0-9A-Za-z]")
    LEADING_UNDERSCORES: Final[re.Pattern[str]] = re.compile(r"^_*")

    # Dialect error text that means "this table is too wide"
    TOO_WIDE_PATTERN: Final[re.Pattern[str]] = re.compile(
        r"(too many columns|row size too large|tables can have at most|"
        r"exceeds the maximum|maximum row size)",
        re.IGNORECASE,
    )

    # Registry tables
    IDENTITY_TABLE_NAME: Final[str] = "_form_identity"
    DATA_MODEL_TABLE_NAME: Final[str] = "_form_data_model"


class FormDataType(Enum):
    """Declared semantic type of a form-definition node."""

    NULL = "null"  # untyped: groups, repeats, or an ambiguous leaf
    TEXT = "string"
    INTEGER = "int"
    DECIMAL = "decimal"
    DATE = "date"
    TIME = "time"
    DATE_TIME = "dateTime"
    CHOICE = "select1"
    CHOICE_LIST = "select"
    BOOLEAN = "boolean"
    GEOPOINT = "geopoint"
    BARCODE = "barcode"
    BINARY = "binary"
    UNSUPPORTED = "unsupported"


class ElementType(Enum):
    """Physical element kinds of the derived relational model."""

    STRING = "STRING"
    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL"
    DATE = "DATE"
    TIME = "TIME"
    DATETIME = "DATETIME"
    BOOLEAN = "BOOLEAN"
    BINARY = "BINARY"
    SELECT_MULTI = "SELECT_MULTI"
    GEOPOINT = "GEOPOINT"
    GROUP = "GROUP"
    REPEAT = "REPEAT"
    PHANTOM = "PHANTOM"
    # binary content chain
    VERSIONED_BINARY = "VERSIONED_BINARY"
    VERSIONED_BINARY_CONTENT_REF_BLOB = "VERSIONED_BINARY_CONTENT_REF_BLOB"
    REF_BLOB = "REF_BLOB"
    # long-text overflow tables
    LONG_STRING_REF_TEXT = "LONG_STRING_REF_TEXT"
    REF_TEXT = "REF_TEXT"


class AuxType(Enum):
    """Auxiliary element tags used in primary keys."""

    NONE = "none"
    VBN = "vbn"
    VBN_REF = "vbn_ref"
    REF_BLOB = "ref_blob"
    GEO_LAT = "geo_lat"
    GEO_LNG = "geo_lng"
    GEO_ALT = "geo_alt"
    GEO_ACC = "geo_acc"
    LONG_STRING_REF = "long_string_ref"
    REF_TEXT = "ref_text"


class ColumnShape(Enum):
    """How a classified node occupies physical storage."""

    SINGLE_COLUMN = "single_column"  # one column on the enclosing table
    EXPANDED_COLUMNS = "expanded_columns"  # zero columns itself, fixed sibling columns
    OWN_TABLE = "own_table"  # zero columns on the parent, owns a table
    STRUCTURAL = "structural"  # no column, children share the enclosing table


# Kinds that never carry a column of their own
STRUCTURAL_ELEMENT_TYPES: Final[frozenset[ElementType]] = frozenset(
    {ElementType.GROUP, ElementType.REPEAT, ElementType.PHANTOM}
)

# Kinds whose tables may be subdivided into phantom tables
SPLITTABLE_OWNER_TYPES: Final[frozenset[ElementType]] = STRUCTURAL_ELEMENT_TYPES

GEOPOINT_EXPANSION: Final[tuple[tuple[str, AuxType, int], ...]] = (
    ("_LAT", AuxType.GEO_LAT, Constants.GEOPOINT_LATITUDE_ORDINAL_NUMBER),
    ("_LNG", AuxType.GEO_LNG, Constants.GEOPOINT_LONGITUDE_ORDINAL_NUMBER),
    ("_ALT", AuxType.GEO_ALT, Constants.GEOPOINT_ALTITUDE_ORDINAL_NUMBER),
    ("_ACC", AuxType.GEO_ACC, Constants.GEOPOINT_ACCURACY_ORDINAL_NUMBER),
)

BINARY_CHAIN: Final[tuple[tuple[str, AuxType, ElementType], ...]] = (
    (Constants.VERSIONED_BINARY_SUFFIX, AuxType.VBN, ElementType.VERSIONED_BINARY),
    (
        Constants.BINARY_REF_SUFFIX,
        AuxType.VBN_REF,
        ElementType.VERSIONED_BINARY_CONTENT_REF_BLOB,
    ),
    (Constants.BINARY_BLOB_SUFFIX, AuxType.REF_BLOB, ElementType.REF_BLOB),
)

__all__ = [
    "BINARY_CHAIN",
    "GEOPOINT_EXPANSION",
    "SPLITTABLE_OWNER_TYPES",
    "STRUCTURAL_ELEMENT_TYPES",
    "AuxType",
    "ColumnShape",
    "Constants",
    "ElementType",
    "FormDataType",
]
