"""Declared-type to physical-kind classification.

Maps the declared semantic type of a form node to one of the closed set of
element kinds and the storage shape it occupies.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import ColumnShape, ElementType, FormDataType
from .exceptions import AmbiguousLeafError


@dataclass(frozen=True, slots=True)
class Classification:
    """Result of classifying one form node."""

    element_type: ElementType
    shape: ColumnShape


_SINGLE_COLUMN_TYPES: dict[FormDataType, ElementType] = {
    FormDataType.TEXT: ElementType.STRING,
    FormDataType.BARCODE: ElementType.STRING,
    FormDataType.UNSUPPORTED: ElementType.STRING,
    FormDataType.CHOICE: ElementType.STRING,
    FormDataType.INTEGER: ElementType.INTEGER,
    FormDataType.DECIMAL: ElementType.DECIMAL,
    FormDataType.DATE: ElementType.DATE,
    FormDataType.TIME: ElementType.TIME,
    FormDataType.DATE_TIME: ElementType.DATETIME,
    FormDataType.BOOLEAN: ElementType.BOOLEAN,
}


def classify(
    declared_type: FormDataType,
    *,
    is_repeatable: bool,
    child_count: int,
    element_name: str = "",
) -> Classification:
    """Classify a form node into an element kind and storage shape.

    Args:
        declared_type: Declared semantic type of the node
        is_repeatable: True if the node repeats
        child_count: Number of child nodes
        element_name: Node name, used in error messages

    Returns:
        Classification of the node

    Raises:
        AmbiguousLeafError: For an untyped, non-repeatable node without children
    """
    single = _SINGLE_COLUMN_TYPES.get(declared_type)
    if single is not None:
        return Classification(single, ColumnShape.SINGLE_COLUMN)
    if declared_type is FormDataType.CHOICE_LIST:
        return Classification(ElementType.SELECT_MULTI, ColumnShape.OWN_TABLE)
    if declared_type is FormDataType.GEOPOINT:
        return Classification(ElementType.GEOPOINT, ColumnShape.EXPANDED_COLUMNS)
    if declared_type is FormDataType.BINARY:
        return Classification(ElementType.BINARY, ColumnShape.OWN_TABLE)
    if declared_type is FormDataType.NULL:
        if is_repeatable:
            return Classification(ElementType.REPEAT, ColumnShape.OWN_TABLE)
        if child_count == 0:
            raise AmbiguousLeafError(element_name)
        return Classification(ElementType.GROUP, ColumnShape.STRUCTURAL)
    msg = f"Unhandled form data type: {declared_type}"
    raise AssertionError(msg)
