"""
Invoice service: issuance and read-only queries.

issue() is the only code path that creates invoices. It runs one
transaction that locks the reservation (ReservationGate), then the owner
ledger row (SequenceAllocator), inserts the invoice, flips the reservation
to paid and writes the audit entries. Either all of it commits or none of
it does.

Lock order is reservation first, owner second, always. Two reservations of
the same owner billed concurrently each hold their own reservation lock and
then queue on the shared owner lock, which cannot deadlock.
"""

import logging
from decimal import Decimal
from uuid import UUID, uuid4

import psycopg2
import psycopg2.errors

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.events import InvoiceIssued
from core.exceptions import (
    AlreadyBilledError,
    LedgerInternalError,
    LockTimeoutError,
    NotFoundError,
)
from core.models import Invoice, InvoiceIssue, PaymentMethod, ReservationStatus
from core.services.reservation_gate import ReservationGate, ReservationSnapshot
from core.services.sequence_allocator import SequenceAllocator
from utils.timezone import now_utc, utc_date

logger = logging.getLogger(__name__)

# Store errors meaning "could not get the lock in time"; the caller may retry
_LOCK_FAILURES = (
    psycopg2.errors.LockNotAvailable,
    psycopg2.errors.DeadlockDetected,
    psycopg2.errors.QueryCanceled,
)


class InvoiceService:
    """Service for invoice issuance and lookup."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        event_bus: EventBus | None = None,
        config: LedgerConfig | None = None,
    ):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or LedgerConfig()
        self.gate = ReservationGate(postgres)
        self.allocator = SequenceAllocator(self.config)

    # -------------------------------------------------------------------------
    # Issuance
    # -------------------------------------------------------------------------

    def issue(
        self,
        reservation_id: UUID,
        payment_method: PaymentMethod | str,
        amount: Decimal | str | int,
    ) -> Invoice:
        """
        Mark a reservation paid and issue its invoice atomically.

        Args:
            reservation_id: Reservation being paid
            payment_method: "cash" or "bank"
            amount: Amount billed, two decimal places at most

        Returns:
            The committed invoice, re-read from the store

        Raises:
            pydantic.ValidationError: Invalid payment method or amount
            ReservationNotFoundError: No such reservation
            OwnerNotFoundError: Reservation's owner row is missing
            AlreadyBilledError: Reservation is already paid
            LockTimeoutError: Lock wait timed out or deadlock detected
            LedgerInternalError: Any other store failure

            Any other exception raised mid-transaction is re-raised
            unchanged after rollback.
        """
        data = InvoiceIssue(
            reservation_id=reservation_id,
            payment_method=payment_method,
            amount=amount,
        )
        invoice_id = uuid4()

        try:
            with self.postgres.transaction() as tx:
                if self.config.lock_timeout_ms is not None:
                    tx.execute("SET LOCAL lock_timeout = %s", (f"{self.config.lock_timeout_ms}ms",))

                snapshot = self.gate.check_and_lock(data.reservation_id, tx)
                invoice_number = self.allocator.allocate(snapshot.owner_id, tx)

                now = now_utc()
                self._insert_invoice(tx, invoice_id, data, invoice_number, now)
                self._mark_reservation_paid(tx, data, invoice_number, now)
                self._audit_issuance(tx, invoice_id, data, snapshot, invoice_number, now)

        except AlreadyBilledError as e:
            logger.warning(
                "Rejected issuance for reservation %s: already billed as %s",
                e.reservation_id, e.invoice_number,
            )
            raise
        except NotFoundError as e:
            logger.warning("Rejected issuance for reservation %s: %s", data.reservation_id, e)
            raise
        except _LOCK_FAILURES as e:
            logger.warning("Issuance for reservation %s lost lock wait: %s", data.reservation_id, e)
            raise LockTimeoutError(
                f"Could not lock reservation {data.reservation_id} or its owner: {e}"
            ) from e
        except psycopg2.Error as e:
            logger.exception("Issuance for reservation %s failed in the store", data.reservation_id)
            raise LedgerInternalError(
                f"Invoice issuance failed for reservation {data.reservation_id}: {e}"
            ) from e

        invoice = self.get_by_id(invoice_id)
        if invoice is None:
            raise LedgerInternalError(f"Invoice {invoice_id} missing after commit")

        logger.info(
            "Issued invoice %s for reservation %s (owner %s)",
            invoice.invoice_number, invoice.reservation_id, snapshot.owner_id,
        )

        if self.event_bus is not None:
            self.event_bus.publish(InvoiceIssued.create(invoice=invoice, owner_id=snapshot.owner_id))

        return invoice

    def _insert_invoice(self, tx, invoice_id: UUID, data: InvoiceIssue, invoice_number: str, now) -> None:
        tx.execute(
            """
            INSERT INTO invoices (
                id, reservation_id, invoice_number,
                issue_date, paid_date, amount, payment_method, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                invoice_id, data.reservation_id, invoice_number,
                now, now, data.amount, data.payment_method.value, now
            )
        )

    def _mark_reservation_paid(self, tx, data: InvoiceIssue, invoice_number: str, now) -> None:
        tx.execute(
            """
            UPDATE reservations
            SET status = %s, payment_method = %s, invoice_number = %s,
                invoice_date = %s, updated_at = %s
            WHERE id = %s
            """,
            (
                ReservationStatus.PAID.value, data.payment_method.value, invoice_number,
                utc_date(now), now, data.reservation_id
            )
        )

    def _audit_issuance(
        self,
        tx,
        invoice_id: UUID,
        data: InvoiceIssue,
        snapshot: ReservationSnapshot,
        invoice_number: str,
        now
    ) -> None:
        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.CREATE,
            changes={
                "created": {
                    "reservation_id": str(data.reservation_id),
                    "owner_id": str(snapshot.owner_id),
                    "invoice_number": invoice_number,
                    "amount": str(data.amount),
                    "payment_method": data.payment_method.value,
                    "issue_date": now.isoformat(),
                }
            },
            tx=tx,
        )
        self.audit.log_change(
            entity_type="reservation",
            entity_id=data.reservation_id,
            action=AuditAction.UPDATE,
            changes={
                "status": {"old": snapshot.status.value, "new": ReservationStatus.PAID.value},
                "payment_method": {"old": snapshot.payment_method, "new": data.payment_method.value},
                "invoice_number": {"old": None, "new": invoice_number},
            },
            tx=tx,
        )

    # -------------------------------------------------------------------------
    # Queries (no locking)
    # -------------------------------------------------------------------------

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID.

        Returns:
            Invoice if found, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s",
            (invoice_id,)
        )

        if row is None:
            return None

        return Invoice.model_validate(row)

    def list_for_reservation(self, reservation_id: UUID) -> list[Invoice]:
        """
        List invoices for a reservation, newest issue date first.

        At most one exists; an unbilled or unknown reservation yields [].
        """
        rows = self.postgres.execute(
            """
            SELECT * FROM invoices
            WHERE reservation_id = %s
            ORDER BY issue_date DESC
            """,
            (reservation_id,)
        )

        return [Invoice.model_validate(row) for row in rows]

    def list_all(self, limit: int | None = None, offset: int = 0) -> list[Invoice]:
        """
        List invoices, newest first.

        Args:
            limit: Page size (defaults to config.default_page_size)
            offset: Rows to skip

        Raises:
            ValueError: If limit or offset is out of range
        """
        if limit is None:
            limit = self.config.default_page_size
        if limit < 1 or limit > self.config.max_page_size:
            raise ValueError(f"limit must be between 1 and {self.config.max_page_size}, got {limit}")
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")

        rows = self.postgres.execute(
            """
            SELECT * FROM invoices
            ORDER BY issue_date DESC, invoice_number DESC
            LIMIT %s OFFSET %s
            """,
            (limit, offset)
        )

        return [Invoice.model_validate(row) for row in rows]
