from __future__ import annotations

import pytest

from formschema_mcp.schema_tools.classifier import classify
from formschema_mcp.schema_tools.constants import ColumnShape, ElementType, FormDataType
from formschema_mcp.schema_tools.exceptions import AmbiguousLeafError, ParseError


@pytest.mark.parametrize(
    "declared,expected",
    [
        (FormDataType.TEXT, ElementType.STRING),
        (FormDataType.BARCODE, ElementType.STRING),
        (FormDataType.CHOICE, ElementType.STRING),
        (FormDataType.UNSUPPORTED, ElementType.STRING),
        (FormDataType.INTEGER, ElementType.INTEGER),
        (FormDataType.DECIMAL, ElementType.DECIMAL),
        (FormDataType.DATE, ElementType.DATE),
        (FormDataType.TIME, ElementType.TIME),
        (FormDataType.DATE_TIME, ElementType.DATETIME),
        (FormDataType.BOOLEAN, ElementType.BOOLEAN),
    ],
)
def test_scalar_types_take_one_column(declared: FormDataType, expected: ElementType) -> None:
    result = classify(declared, is_repeatable=False, child_count=0)
    assert result.element_type is expected
    assert result.shape is ColumnShape.SINGLE_COLUMN


@pytest.mark.parametrize(
    "declared,expected,shape",
    [
        (FormDataType.CHOICE_LIST, ElementType.SELECT_MULTI, ColumnShape.OWN_TABLE),
        (FormDataType.BINARY, ElementType.BINARY, ColumnShape.OWN_TABLE),
        (FormDataType.GEOPOINT, ElementType.GEOPOINT, ColumnShape.EXPANDED_COLUMNS),
    ],
)
def test_composite_types(
    declared: FormDataType, expected: ElementType, shape: ColumnShape
) -> None:
    result = classify(declared, is_repeatable=False, child_count=0)
    assert (result.element_type, result.shape) == (expected, shape)


def test_declared_type_wins_over_repeatable_flag() -> None:
    result = classify(FormDataType.TEXT, is_repeatable=True, child_count=0)
    assert result.element_type is ElementType.STRING


def test_untyped_repeatable_node_is_a_repeat() -> None:
    result = classify(FormDataType.NULL, is_repeatable=True, child_count=0)
    assert result.element_type is ElementType.REPEAT
    assert result.shape is ColumnShape.OWN_TABLE


def test_untyped_node_with_children_is_a_group() -> None:
    result = classify(FormDataType.NULL, is_repeatable=False, child_count=2)
    assert result.element_type is ElementType.GROUP
    assert result.shape is ColumnShape.STRUCTURAL


def test_untyped_childless_leaf_is_rejected() -> None:
    with pytest.raises(AmbiguousLeafError, match="Field name: mystery appears to be a value field"):
        classify(FormDataType.NULL, is_repeatable=False, child_count=0, element_name="mystery")


def test_ambiguous_leaf_is_a_parse_error() -> None:
    with pytest.raises(ParseError) as excinfo:
        classify(FormDataType.NULL, is_repeatable=False, child_count=0, element_name="x")
    assert excinfo.value.element_name == "x"  # type: ignore[attr-defined]
