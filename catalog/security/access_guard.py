"""
catalog/security/access_guard.py

Ownership policy for catalogued documents.

Reading a record or a listing is open to every caller; anything that
changes a record or its payload is reserved to the record's owner.
The guard is pure: it compares identities and never performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from catalog.core.exceptions import PermissionDeniedError
from catalog.models.domain import Document, OwnerId


class Action(str, Enum):
    READ = "read"
    LIST = "list"
    UPDATE = "update"
    DELETE = "delete"
    REPLACE_BINARY = "replace_binary"


_OPEN_ACTIONS = frozenset({Action.READ, Action.LIST})


@dataclass(frozen=True)
class AccessDecision:
    permitted: bool
    reason: str = ""


class AccessGuard:

    def authorize(self, document: Document, caller: Optional[OwnerId], action: Action) -> AccessDecision:
        if action in _OPEN_ACTIONS:
            return AccessDecision(permitted=True)
        if caller is not None and document.owner_id == caller:
            return AccessDecision(permitted=True)
        return AccessDecision(
            permitted=False,
            reason=f"Document {document.id} belongs to a different owner; cannot {action.value}.",
        )

    def require(self, document: Document, caller: Optional[OwnerId], action: Action) -> None:
        """Like ``authorize`` but raises PermissionDeniedError on denial."""
        decision = self.authorize(document, caller, action)
        if not decision.permitted:
            raise PermissionDeniedError(document.owner_id, caller, decision.reason)
