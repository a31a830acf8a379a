"""
Reservation billing-state gate.

Locks a reservation row for the rest of the issuance transaction and refuses
reservations that are already paid. This lock is always taken before the
owner ledger row lock; every code path touching both rows must keep that
order.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.exceptions import AlreadyBilledError, ReservationNotFoundError
from core.models import Reservation, ReservationStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationSnapshot:
    """Locked reservation state handed to the invoice issuer."""

    reservation_id: UUID
    property_id: UUID
    owner_id: UUID
    status: ReservationStatus
    price: Decimal | None
    payment_method: str | None


class ReservationGate:
    """Checks and locks a reservation's billing state."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def check_and_lock(self, reservation_id: UUID, tx) -> ReservationSnapshot:
        """
        Lock the reservation row and verify it can still be billed.

        Only the reservation row is locked (FOR UPDATE OF r); the property
        join just resolves the owner. A transaction that waited on this lock
        re-reads the committed row, so it sees PAID once the winner commits.

        Args:
            reservation_id: Reservation to bill
            tx: Cursor of an already-open transaction

        Returns:
            Snapshot with the owning owner id

        Raises:
            ReservationNotFoundError: No such reservation
            AlreadyBilledError: Reservation is already paid
        """
        tx.execute(
            """
            SELECT r.id, r.property_id, r.status, r.price, r.payment_method,
                   r.invoice_number, p.owner_id
            FROM reservations r
            JOIN properties p ON p.id = r.property_id
            WHERE r.id = %s
            FOR UPDATE OF r
            """,
            (reservation_id,)
        )
        row = tx.fetchone()
        if row is None:
            raise ReservationNotFoundError(reservation_id)

        status = ReservationStatus(row["status"])
        if status == ReservationStatus.PAID:
            raise AlreadyBilledError(reservation_id, row["invoice_number"])

        return ReservationSnapshot(
            reservation_id=row["id"],
            property_id=row["property_id"],
            owner_id=row["owner_id"],
            status=status,
            price=row["price"],
            payment_method=row["payment_method"],
        )

    def get(self, reservation_id: UUID) -> Reservation | None:
        """
        Read a reservation without locking.

        Returns:
            Reservation if found, None otherwise.
        """
        row = self.postgres.execute_single(
            """
            SELECT id, property_id, status, price, payment_method,
                   invoice_number, invoice_date, created_at, updated_at
            FROM reservations
            WHERE id = %s
            """,
            (reservation_id,)
        )

        if row is None:
            return None

        return Reservation.model_validate(row)
