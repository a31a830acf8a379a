"""Typed exceptions for billing ledger failures.

Every failure leaves the issuance transaction rolled back before it reaches
the caller. None of these are retried inside the ledger.
"""

from uuid import UUID


class LedgerError(Exception):
    """Base class for billing ledger errors."""


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    entity = "Entity"

    def __init__(self, entity_id: UUID):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class OwnerNotFoundError(NotFoundError):
    entity = "Owner"


class ReservationNotFoundError(NotFoundError):
    entity = "Reservation"


class AlreadyBilledError(LedgerError):
    """
    Reservation is already paid and carries an invoice.

    This is the duplicate-invoice guard. Carries the existing invoice number
    so clients can show it instead of retrying.
    """

    def __init__(self, reservation_id: UUID, invoice_number: str | None):
        self.reservation_id = reservation_id
        self.invoice_number = invoice_number
        super().__init__(
            f"Reservation {reservation_id} is already billed (invoice {invoice_number})"
        )


class OwnerInUseError(LedgerError):
    """Owner still has properties and cannot be deleted."""

    def __init__(self, owner_id: UUID, property_count: int):
        self.owner_id = owner_id
        self.property_count = property_count
        super().__init__(
            f"Owner {owner_id} has {property_count} associated properties and cannot be deleted"
        )


class LedgerInternalError(LedgerError):
    """Store-level failure: constraint violation, connection loss, etc."""


class LockTimeoutError(LedgerInternalError):
    """
    Lock wait exceeded, deadlock detected, or statement cancelled.

    Safe to retry: nothing from the attempt was committed.
    """
