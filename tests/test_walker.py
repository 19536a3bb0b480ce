from __future__ import annotations

import pytest

from formschema_mcp.schema_tools.constants import ElementType, FormDataType
from formschema_mcp.schema_tools.exceptions import AmbiguousLeafError
from formschema_mcp.schema_tools.models import FormNode, ModelElement
from formschema_mcp.schema_tools.session import BuildSession
from formschema_mcp.schema_tools.walker import build_data_model, resolve_names

ROOT_KEY = "md5:0123456789abcdef"


def _leaf(name: str, data_type: FormDataType) -> FormNode:
    return FormNode(name=name, data_type=data_type)


def _household() -> FormNode:
    return FormNode(
        name="data",
        children=[
            _leaf("name", FormDataType.TEXT),
            _leaf("age", FormDataType.INTEGER),
            _leaf("loc", FormDataType.GEOPOINT),
            _leaf("photo", FormDataType.BINARY),
            FormNode(name="address", children=[_leaf("street", FormDataType.TEXT)]),
            FormNode(
                name="members",
                repeatable=True,
                children=[_leaf("member_name", FormDataType.TEXT)],
            ),
            _leaf("colors", FormDataType.CHOICE_LIST),
        ],
    )


def _build(root: FormNode) -> BuildSession:
    session = BuildSession(schema_root_key=ROOT_KEY, schema_name="main")
    build_data_model(session, root, "household")
    resolve_names(session, {"main": set()})
    return session


def _named(session: BuildSession, name: str) -> ModelElement:
    return next(m for m in session.elements if m.element_name == name)


def test_root_group_is_backed_by_core_table() -> None:
    session = _build(_household())
    root = session.elements[0]
    assert root.primary_key == f"elem+{ROOT_KEY}(00000001)"
    assert root.parent_key == ROOT_KEY
    assert root.ordinal == 1
    assert root.element_type is ElementType.GROUP
    assert root.persist_as_table == "HOUSEHOLD_CORE"
    assert root.persist_as_column is None


def test_scalar_leaves_get_columns_on_enclosing_table() -> None:
    session = _build(_household())
    name = _named(session, "name")
    age = _named(session, "age")
    assert (name.persist_as_table, name.persist_as_column) == ("HOUSEHOLD_CORE", "NAME")
    assert (age.element_type, age.persist_as_column) == (ElementType.INTEGER, "AGE")
    assert (name.ordinal, age.ordinal) == (1, 2)


def test_geopoint_expands_into_four_decimal_columns() -> None:
    session = _build(_household())
    loc = _named(session, "loc")
    parts = session.children_of(loc.primary_key)

    assert loc.element_type is ElementType.GEOPOINT
    assert loc.persist_as_column is None
    assert [m.persist_as_column for m in parts] == ["LOC_LAT", "LOC_LNG", "LOC_ALT", "LOC_ACC"]
    assert [m.ordinal for m in parts] == [1, 2, 3, 4]
    assert all(m.element_type is ElementType.DECIMAL for m in parts)
    assert all(m.persist_as_table == "HOUSEHOLD_CORE" for m in parts)
    assert parts[0].primary_key == f"elem+{ROOT_KEY}(00000004-geo_lat)"


def test_binary_field_yields_three_table_chain() -> None:
    session = _build(_household())
    photo = _named(session, "photo")
    assert photo.element_type is ElementType.BINARY
    assert photo.persist_as_column is None
    assert photo.persist_as_table == "HOUSEHOLD_PHOTO_BN"

    chain = []
    parent = photo
    while children := session.children_of(parent.primary_key):
        assert len(children) == 1
        parent = children[0]
        chain.append(parent)

    assert [m.element_type for m in chain] == [
        ElementType.VERSIONED_BINARY,
        ElementType.VERSIONED_BINARY_CONTENT_REF_BLOB,
        ElementType.REF_BLOB,
    ]
    assert [m.persist_as_table for m in chain] == [
        "HOUSEHOLD_PHOTO_VBN",
        "HOUSEHOLD_PHOTO_REF",
        "HOUSEHOLD_PHOTO_BLB",
    ]
    assert all(m.persist_as_column is None for m in chain)


def test_nested_group_prefixes_columns_and_shares_table() -> None:
    session = _build(_household())
    address = _named(session, "address")
    street = _named(session, "street")
    assert address.element_type is ElementType.GROUP
    assert address.persist_as_column is None
    assert street.persist_as_table == "HOUSEHOLD_CORE"
    assert street.persist_as_column == "ADDRESS_STREET"


def test_repeat_and_select_multi_own_tables() -> None:
    session = _build(_household())
    members = _named(session, "members")
    member_name = _named(session, "member_name")
    colors = _named(session, "colors")

    assert members.element_type is ElementType.REPEAT
    assert members.persist_as_table == "HOUSEHOLD_MEMBERS"
    assert (member_name.persist_as_table, member_name.persist_as_column) == (
        "HOUSEHOLD_MEMBERS",
        "MEMBER_NAME",
    )
    assert colors.element_type is ElementType.SELECT_MULTI
    assert colors.persist_as_table == "HOUSEHOLD_COLORS"
    assert colors.persist_as_column is None


def test_long_text_tables_hang_off_schema_root() -> None:
    session = _build(_household())
    ref, text = session.elements[-2:]
    assert ref.element_type is ElementType.LONG_STRING_REF_TEXT
    assert (ref.parent_key, ref.ordinal) == (ROOT_KEY, 2)
    assert ref.persist_as_table == "HOUSEHOLD_STRING_REF"
    assert text.element_type is ElementType.REF_TEXT
    assert (text.parent_key, text.ordinal) == (ref.primary_key, 1)
    assert text.persist_as_table == "HOUSEHOLD_STRING_TXT"


def test_consecutive_same_name_siblings_collapse() -> None:
    root = FormNode(
        name="data",
        children=[
            FormNode(name="r", repeatable=True, children=[_leaf("x", FormDataType.TEXT)]),
            FormNode(name="r", repeatable=True, children=[_leaf("x", FormDataType.TEXT)]),
            _leaf("after", FormDataType.TEXT),
        ],
    )
    session = _build(root)
    assert [m.element_name for m in session.elements if m.element_type is ElementType.REPEAT] == [
        "r"
    ]
    assert _named(session, "after").ordinal == 2


def test_parent_chains_terminate_and_sibling_ordinals_are_unique() -> None:
    session = _build(_household())
    by_key = {m.primary_key: m for m in session.elements}
    assert len(by_key) == len(session.elements)

    for m in session.elements:
        seen = set()
        key = m.primary_key
        while key != ROOT_KEY:
            assert key not in seen
            seen.add(key)
            key = by_key[key].parent_key

    siblings: dict[str, list[int]] = {}
    for m in session.elements:
        siblings.setdefault(m.parent_key, []).append(m.ordinal)
    for ordinals in siblings.values():
        assert len(ordinals) == len(set(ordinals))


def test_untyped_leaf_fails_the_walk() -> None:
    root = FormNode(name="data", children=[_leaf("ok", FormDataType.TEXT), FormNode(name="mystery")])
    session = BuildSession(schema_root_key=ROOT_KEY, schema_name="main")
    with pytest.raises(AmbiguousLeafError, match="mystery"):
        build_data_model(session, root, "household")
