"""
Domain events for the billing ledger.

Immutable event objects published after a transaction commits. Handlers
react to what happened without the publisher knowing who's listening.

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class LedgerEvent:
    """Base class for all ledger domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# INVOICE EVENTS
# =============================================================================


@dataclass(frozen=True)
class InvoiceEvent(LedgerEvent):
    """Events related to invoice lifecycle."""
    pass


@dataclass(frozen=True)
class InvoiceIssued(InvoiceEvent):
    """An invoice was issued and its reservation marked paid (committed)."""
    invoice: Any = None  # Invoice; Any avoids a circular import
    owner_id: Any = None

    @classmethod
    def create(cls, invoice: Any, owner_id: Any) -> "InvoiceIssued":
        return cls(invoice=invoice, owner_id=owner_id)


# =============================================================================
# OWNER EVENTS
# =============================================================================


@dataclass(frozen=True)
class OwnerEvent(LedgerEvent):
    """Events related to owner lifecycle."""
    pass


@dataclass(frozen=True)
class OwnerCreated(OwnerEvent):
    """A new owner (and its invoice ledger row) was created."""
    owner: Any = None

    @classmethod
    def create(cls, owner: Any) -> "OwnerCreated":
        return cls(owner=owner)
