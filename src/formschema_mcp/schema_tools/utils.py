"""Utility functions for the form schema engine.

Functions:
- sanitize_identifier(): Turn a human-authored fragment into a legal name
- shorten_identifier(): Bound a name length, keeping room for a suffix
- content_hash(): Fingerprint raw definition content
- persistence_prefix(): Derive the table name prefix from a form id
- substitute_slashes(): Escape slashes in form ids
"""

from __future__ import annotations

from collections.abc import Iterable
import hashlib

from .constants import Constants


def sanitize_identifier(name: str) -> str:
    """Normalize a name fragment to upper-case alphanumerics and underscores.

    Illegal characters become underscores, runs of underscores collapse, and
    leading/trailing underscores are stripped. Names must start with a letter,
    so a leading digit gets an ``X`` prefix; an empty result becomes ``X``.

    Example:
        >>> sanitize_identifier("my-field.name")
        'MY_FIELD_NAME'
        >>> sanitize_identifier("__9lives")
        'X9LIVES'
    """
    upper = Constants.ILLEGAL_NAME_CHARS.sub("_", name.upper())
    collapsed = Constants.REPEATED_UNDERSCORES.sub("_", upper).strip("_")
    if not collapsed or collapsed[0].isdigit():
        collapsed = "X" + collapsed
    return collapsed


def join_fragments(fragments: Iterable[str]) -> str:
    """Join non-empty name fragments with underscores and sanitize the result."""
    return sanitize_identifier("_".join(f for f in fragments if f))


def shorten_identifier(name: str, max_length: int, suffix: str = "") -> str:
    """Truncate ``name`` so that ``name + suffix`` fits in ``max_length``."""
    room = max(1, max_length - len(suffix))
    stem = name[:room].rstrip("_") or name[:room]
    return stem + suffix


def content_hash(raw: str) -> str:
    """Return the SHA-256 hex digest of raw definition text."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def substitute_slashes(form_id: str) -> str:
    return form_id.replace(Constants.FORWARD_SLASH, Constants.FORWARD_SLASH_SUBSTITUTION)


def _munge(value: str) -> str:
    return Constants.NON_ALPHANUMERIC.sub("_", value)


def persistence_prefix(form_id: str, realm_domains: Iterable[str] = ()) -> str:
    """Derive the table-name prefix for a form from its id.

    Everything up to the first ``:`` is dropped, slash substitutions and other
    non-alphanumerics become underscores, and the longest matching
    organisation domain is removed from the front.

    Args:
        form_id: Submission form id (slashes already substituted)
        realm_domains: Organisation domains to strip from the prefix

    Returns:
        Prefix for the form's table names (may be empty)

    Example:
        >>> persistence_prefix("example.org:household/v2", ["example.org"])
        'household_v2'
    """
    prefix = form_id[form_id.find(":") + 1 :]
    prefix = prefix.replace(Constants.FORWARD_SLASH_SUBSTITUTION, "_")
    prefix = Constants.LEADING_UNDERSCORES.sub("", _munge(prefix))

    # longest domain first so that sub-domains win over their parents
    domains = sorted(set(realm_domains), key=lambda d: (-len(d), d))
    for domain in domains:
        munged = _munge(domain)
        if munged and prefix.startswith(munged):
            prefix = Constants.LEADING_UNDERSCORES.sub("", prefix[len(munged) :])
            break
    return prefix
