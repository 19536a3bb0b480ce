"""Identity registry for published forms.

The registry decides, for a form identity and the raw definition submitted
with it, whether a schema build is needed. A published identity is immutable:
resubmitting the same content is a no-op and different content is a conflict.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from fastmcp.utilities.logging import get_logger

from formschema_mcp.schema_tools.models import FormIdentity, IdentityRecord
from formschema_mcp.schema_tools.persistence import BackingStore
from formschema_mcp.schema_tools.utils import content_hash

_logger = get_logger("form_schema.registry")


class ResolutionKind(Enum):
    """Outcome of resolving an identity against the registry."""

    ABSENT = "absent"  # never published: full build
    IDENTICAL = "identical"  # published with the same content: no-op
    CONFLICTING = "conflicting"  # published with different content: reject
    INCOMPLETE = "incomplete"  # same content, element model never recorded: resume


@dataclass(frozen=True)
class IdentityResolution:
    """Resolution outcome and the existing record, if any."""

    kind: ResolutionKind
    record: IdentityRecord | None = None


class IdentityResolver:
    """Resolves form identities against the records of a backing store."""

    def __init__(self, store: BackingStore) -> None:
        self.store = store

    def resolve(self, identity: FormIdentity, raw_definition: str) -> IdentityResolution:
        """Classify a submission of ``raw_definition`` under ``identity``.

        Args:
            identity: Submission identity of the form
            raw_definition: The raw definition text being published

        Returns:
            IdentityResolution describing what the build should do
        """
        record = self.store.lookup_identity(identity)
        if record is None:
            kind = ResolutionKind.ABSENT
        elif record.content_hash != content_hash(raw_definition):
            kind = ResolutionKind.CONFLICTING
        elif record.is_complete:
            kind = ResolutionKind.IDENTICAL
        else:
            kind = ResolutionKind.INCOMPLETE
        _logger.info("Resolved %s as %s", identity.canonical_key(), kind.value)
        return IdentityResolution(kind=kind, record=record)
