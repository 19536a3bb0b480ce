from __future__ import annotations

import pytest

from formschema_mcp.schema_tools.models import FormIdentity
from formschema_mcp.schema_tools.utils import (
    content_hash,
    persistence_prefix,
    sanitize_identifier,
    shorten_identifier,
    substitute_slashes,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("my-field.name", "MY_FIELD_NAME"),
        ("__9lives", "X9LIVES"),
        ("a  b", "A_B"),
        ("ünïcode", "N_CODE"),
        ("", "X"),
        ("___", "X"),
    ],
)
def test_sanitize_identifier(raw: str, expected: str) -> None:
    assert sanitize_identifier(raw) == expected


def test_shorten_identifier_keeps_room_for_suffix() -> None:
    assert shorten_identifier("ABCDEFGHIJ", 6) == "ABCDEF"
    assert shorten_identifier("ABCDEFGHIJ", 6, "_12") == "ABC_12"
    assert shorten_identifier("ABC_DEFGH", 6, "_2") == "ABC_2"


@pytest.mark.parametrize(
    "form_id,domains,expected",
    [
        ("household", (), "household"),
        ("example.org:household", (), "household"),
        (substitute_slashes("org/household/v2"), (), "org_household_v2"),
        ("opendatakit.org_household", ("opendatakit", "opendatakit.org"), "household"),
        ("opendatakit_household", ("opendatakit", "opendatakit.org"), "household"),
        ("__private", (), "private"),
    ],
)
def test_persistence_prefix(form_id: str, domains: tuple[str, ...], expected: str) -> None:
    assert persistence_prefix(form_id, domains) == expected


def test_canonical_key_and_root_key() -> None:
    identity = FormIdentity("household", 3, None)
    assert identity.canonical_key() == "household|3|"
    assert FormIdentity("household", None, 7).canonical_key() == "household||7"
    assert identity.schema_root_key().startswith("md5:")
    assert identity.schema_root_key() == FormIdentity("household", 3).schema_root_key()
    assert identity.schema_root_key() != FormIdentity("household", 4).schema_root_key()


def test_content_hash_is_sha256_hex() -> None:
    digest = content_hash("<h:html/>")
    assert len(digest) == 64
    assert digest == content_hash("<h:html/>")
    assert digest != content_hash("<h:html />")
