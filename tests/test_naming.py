from __future__ import annotations

import pytest

from formschema_mcp.schema_tools.naming import NamingSet


def test_table_names_resolve_from_fragments() -> None:
    naming = NamingSet()
    core = naming.propose_table_name("main", "household", "", "CORE")
    repeat = naming.propose_table_name("main", "household", "", "members")

    resolved = naming.resolve_all({"main": set()})

    assert resolved == {core: "HOUSEHOLD_CORE", repeat: "HOUSEHOLD_MEMBERS"}
    assert naming.resolve_table_placeholder(core) == "HOUSEHOLD_CORE"


def test_duplicate_table_proposals_get_numeric_suffixes() -> None:
    naming = NamingSet()
    first = naming.propose_table_name("main", "f", "", "items")
    second = naming.propose_table_name("main", "f", "", "items")
    third = naming.propose_table_name("main", "f", "", "ITEMS")

    naming.resolve_all({"main": set()})

    assert [naming.resolve_table_placeholder(p) for p in (first, second, third)] == [
        "F_ITEMS",
        "F_ITEMS_2",
        "F_ITEMS_3",
    ]


def test_existing_store_names_are_avoided_case_insensitively() -> None:
    naming = NamingSet()
    core = naming.propose_table_name("main", "household", "", "CORE")

    naming.resolve_all({"main": {"household_core"}})

    assert naming.resolve_table_placeholder(core) == "HOUSEHOLD_CORE_2"


def test_names_in_other_schemas_do_not_collide() -> None:
    naming = NamingSet()
    core = naming.propose_table_name("main", "household", "", "CORE")

    naming.resolve_all({"other": {"HOUSEHOLD_CORE"}})

    assert naming.resolve_table_placeholder(core) == "HOUSEHOLD_CORE"


def test_column_names_are_sanitized_and_deduplicated_per_table() -> None:
    naming = NamingSet()
    table = naming.propose_table_name("main", "f", "", "CORE")
    other = naming.propose_table_name("main", "f", "", "R")
    a = naming.propose_column_name(table, "", "my-field.name")
    b = naming.propose_column_name(table, "", "my_field_name")
    c = naming.propose_column_name(table, "address", "9th line")
    d = naming.propose_column_name(other, "", "my-field.name")

    naming.resolve_all({})

    assert naming.resolve_column_placeholder(table, a) == "MY_FIELD_NAME"
    assert naming.resolve_column_placeholder(table, b) == "MY_FIELD_NAME_2"
    assert naming.resolve_column_placeholder(table, c) == "ADDRESS_9TH_LINE"
    assert naming.resolve_column_placeholder(other, d) == "MY_FIELD_NAME"


def test_leading_digit_gets_letter_prefix() -> None:
    naming = NamingSet()
    table = naming.propose_table_name("main", "", "", "1st")
    column = naming.propose_column_name(table, "", "2nd")

    naming.resolve_all({})

    assert naming.resolve_table_placeholder(table) == "X1ST"
    assert naming.resolve_column_placeholder(table, column) == "X2ND"


def test_long_names_are_truncated_before_suffixing() -> None:
    naming = NamingSet(max_table_name_length=12, max_column_name_length=10)
    table = naming.propose_table_name("main", "averyverylongprefix", "", "CORE")
    first = naming.propose_column_name(table, "", "abcdefghijklmnop")
    second = naming.propose_column_name(table, "", "abcdefghijklmnop")

    naming.resolve_all({})

    assert len(naming.resolve_table_placeholder(table)) <= 12
    assert naming.resolve_column_placeholder(table, first) == "ABCDEFGHIJ"
    assert naming.resolve_column_placeholder(table, second) == "ABCDEFGH_2"


def test_removed_column_proposal_frees_its_name() -> None:
    naming = NamingSet()
    table = naming.propose_table_name("main", "f", "", "CORE")
    withdrawn = naming.propose_column_name(table, "", "group")
    naming.remove_column_proposal(table, withdrawn)
    kept = naming.propose_column_name(table, "", "group")

    naming.resolve_all({})

    assert naming.resolve_column_placeholder(table, kept) == "GROUP"
    with pytest.raises(RuntimeError, match="not registered"):
        naming.resolve_column_placeholder(table, withdrawn)


def test_missing_column_placeholder_passes_through() -> None:
    naming = NamingSet()
    table = naming.propose_table_name("main", "f", "", "CORE")
    naming.resolve_all({})
    assert naming.resolve_column_placeholder(table, None) is None


def test_unresolved_table_placeholder_is_an_error() -> None:
    naming = NamingSet()
    table = naming.propose_table_name("main", "f", "", "CORE")
    with pytest.raises(RuntimeError, match="has not been resolved"):
        naming.resolve_table_placeholder(table)


def test_fresh_table_names_never_repeat() -> None:
    naming = NamingSet()
    core = naming.propose_table_name("main", "f", "", "CORE")
    naming.resolve_all({"main": set()})

    first = naming.allocate_fresh_unique_table_name("main", "F_CORE", {"F_CORE"})
    second = naming.allocate_fresh_unique_table_name("main", "F_CORE", {"F_CORE"})

    assert naming.resolve_table_placeholder(core) == "F_CORE"
    assert (first, second) == ("F_CORE_2", "F_CORE_3")


def test_resolution_is_deterministic() -> None:
    def run() -> list[str]:
        naming = NamingSet()
        placeholders = [
            naming.propose_table_name("main", "f", "", name) for name in ("a", "b", "a", "c")
        ]
        naming.resolve_all({"main": {"F_B"}})
        return [naming.resolve_table_placeholder(p) for p in placeholders]

    assert run() == run() == ["F_A", "F_B_2", "F_A_2", "F_C"]
