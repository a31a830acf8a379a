"""
Per-owner gapless invoice number allocation.

Mechanism: pessimistic row lock. The owner row is read with
SELECT ... FOR UPDATE, the counter is incremented in Python and written back
with a plain UPDATE, all on the caller's open transaction. Concurrent
allocators for the same owner queue on the row lock in PostgreSQL; the next
one reads the committed counter once the holder's transaction ends.

The increment only becomes durable when the caller commits. On rollback the
number returns to the pool and goes to whichever transaction takes the lock
next, so committed numbers never skip.

Never cache the counter in process memory: always re-read under the lock.
"""

import logging
from uuid import UUID

from core.config import LedgerConfig
from core.exceptions import OwnerNotFoundError

logger = logging.getLogger(__name__)


# Printed when an owner has no series. db/schema.sql indexes owners on the
# same fallback, so at most one owner can print it.
FALLBACK_INVOICE_SERIES = "INV"


def effective_series(series: str | None) -> str:
    """Series actually printed on an owner's invoices."""
    return series.strip() if series and series.strip() else FALLBACK_INVOICE_SERIES


def format_invoice_number(series: str | None, number: int, width: int = 6) -> str:
    """
    Format the externally visible invoice number.

    Format: {series}-{number zero-padded to width}, e.g. INV-000042.
    A missing or blank series falls back to FALLBACK_INVOICE_SERIES.
    """
    if number < 1:
        raise ValueError(f"Invoice sequence numbers start at 1, got {number}")

    return f"{effective_series(series)}-{number:0{width}d}"


class SequenceAllocator:
    """Allocates the next invoice number for an owner inside a transaction."""

    def __init__(self, config: LedgerConfig | None = None):
        self.config = config or LedgerConfig()

    def allocate(self, owner_id: UUID, tx) -> str:
        """
        Lock the owner ledger row, consume the next number and format it.

        Args:
            owner_id: Owner whose counter to advance
            tx: Cursor of an already-open transaction (PostgresClient.transaction())

        Returns:
            Formatted invoice number

        Raises:
            OwnerNotFoundError: If the owner row does not exist
            RuntimeError: If tx is not inside a transaction
        """
        if tx.connection.autocommit:
            raise RuntimeError("allocate() requires an open transaction; got an autocommit connection")

        tx.execute(
            """
            SELECT invoice_series, last_invoice_number
            FROM owners
            WHERE id = %s
            FOR UPDATE
            """,
            (owner_id,)
        )
        row = tx.fetchone()
        if row is None:
            raise OwnerNotFoundError(owner_id)

        next_number = (row["last_invoice_number"] or 0) + 1

        tx.execute(
            "UPDATE owners SET last_invoice_number = %s WHERE id = %s",
            (next_number, owner_id)
        )

        invoice_number = format_invoice_number(
            row["invoice_series"],
            next_number,
            width=self.config.invoice_number_width,
        )
        logger.debug("Allocated %s for owner %s (uncommitted)", invoice_number, owner_id)
        return invoice_number
