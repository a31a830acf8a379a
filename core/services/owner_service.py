"""
Owner service for administrative operations.

Owners carry the invoice ledger row. This service creates, reads, updates
and deletes owners but never touches last_invoice_number: only the
SequenceAllocator advances it, inside an issuance transaction.

The printed series (invoice_series, or INV when unset) is unique across
owners and fixed once an owner has issued invoices, so two owners can never
allocate the same invoice number.
"""

import logging
from uuid import UUID, uuid4

import psycopg2.errors

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.event_bus import EventBus
from core.events import OwnerCreated
from core.exceptions import LedgerInternalError, OwnerInUseError, OwnerNotFoundError
from core.models import Owner, OwnerCreate, OwnerUpdate
from core.services.sequence_allocator import effective_series
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Valid columns that can be updated
_UPDATABLE_COLUMNS = {"name", "tax_id", "phone", "invoice_series"}

# Unique index on the printed series (db/schema.sql)
_SERIES_INDEX = "owners_effective_invoice_series_key"


def _series_conflict(e: psycopg2.errors.UniqueViolation, series: str | None) -> Exception:
    """Translate a unique violation on owners into the error to raise."""
    if e.diag.constraint_name == _SERIES_INDEX:
        return ValueError(f"Invoice series '{effective_series(series)}' is already in use")
    return LedgerInternalError(f"Owner write violated {e.diag.constraint_name}: {e}")


class OwnerService:
    """Service for owner operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, event_bus: EventBus | None = None):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus

    def create(self, data: OwnerCreate) -> Owner:
        """
        Create a new owner with a zeroed invoice counter.

        Raises:
            ValueError: If the printed series is already used by another
                owner (only one owner may leave the series unset)
        """
        owner_id = uuid4()
        now = now_utc()

        try:
            row = self.postgres.execute_returning(
                """
                INSERT INTO owners (
                    id, name, tax_id, phone, invoice_series,
                    last_invoice_number, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, 0, %s, %s)
                RETURNING *
                """,
                (owner_id, data.name, data.tax_id, data.phone, data.invoice_series, now, now)
            )[0]
        except psycopg2.errors.UniqueViolation as e:
            raise _series_conflict(e, data.invoice_series) from e

        owner = Owner.model_validate(row)

        self.audit.log_change(
            entity_type="owner",
            entity_id=owner.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )

        if self.event_bus is not None:
            self.event_bus.publish(OwnerCreated.create(owner=owner))

        return owner

    def get_by_id(self, owner_id: UUID) -> Owner | None:
        """
        Get owner by ID.

        Returns:
            Owner if found, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM owners WHERE id = %s",
            (owner_id,)
        )

        if row is None:
            return None

        return Owner.model_validate(row)

    def list_all(self) -> list[Owner]:
        """List all owners ordered by name."""
        rows = self.postgres.execute("SELECT * FROM owners ORDER BY name, id")
        return [Owner.model_validate(row) for row in rows]

    def update(self, owner_id: UUID, data: OwnerUpdate) -> Owner:
        """
        Update owner fields.

        Runs under the owner row lock, the same lock the SequenceAllocator
        takes, so the counter cannot move between the check and the write.
        Only the owner row is locked; no reservation lock is taken.

        Args:
            owner_id: Owner UUID
            data: Fields to update (only non-None fields are changed)

        Raises:
            OwnerNotFoundError: If owner not found
            ValueError: If no fields given, the series is taken, or the
                series would change after invoices were issued
        """
        updates = {
            k: v for k, v in data.model_dump(exclude_none=True).items()
            if k in _UPDATABLE_COLUMNS
        }

        try:
            with self.postgres.transaction() as tx:
                tx.execute("SELECT * FROM owners WHERE id = %s FOR UPDATE", (owner_id,))
                row = tx.fetchone()
                if row is None:
                    raise OwnerNotFoundError(owner_id)
                current = Owner.model_validate(row)

                if not updates:
                    raise ValueError("No fields to update")

                if (
                    "invoice_series" in updates
                    and current.last_invoice_number > 0
                    and effective_series(updates["invoice_series"]) != effective_series(current.invoice_series)
                ):
                    raise ValueError(
                        f"Invoice series of owner {owner_id} cannot change after "
                        f"{current.last_invoice_number} invoices were issued"
                    )

                set_clause = ", ".join(f"{column} = %s" for column in updates)
                tx.execute(
                    f"UPDATE owners SET {set_clause}, updated_at = %s WHERE id = %s RETURNING *",
                    (*updates.values(), now_utc(), owner_id)
                )
                updated = Owner.model_validate(tx.fetchone())

                changes = compute_changes(
                    current.model_dump(mode="json"),
                    updated.model_dump(mode="json")
                )
                if changes:
                    self.audit.log_change(
                        entity_type="owner",
                        entity_id=owner_id,
                        action=AuditAction.UPDATE,
                        changes=changes,
                        tx=tx
                    )
        except psycopg2.errors.UniqueViolation as e:
            raise _series_conflict(e, updates.get("invoice_series")) from e

        return updated

    def delete(self, owner_id: UUID) -> bool:
        """
        Delete an owner that has no properties.

        Returns:
            True if deleted, False if not found

        Raises:
            OwnerInUseError: If the owner still has properties
        """
        current = self.get_by_id(owner_id)
        if current is None:
            return False

        property_count = self.postgres.execute_scalar(
            "SELECT COUNT(*) FROM properties WHERE owner_id = %s",
            (owner_id,)
        )
        if property_count:
            raise OwnerInUseError(owner_id, property_count)

        try:
            self.postgres.execute("DELETE FROM owners WHERE id = %s", (owner_id,))
        except psycopg2.errors.ForeignKeyViolation as e:
            # A property was attached between the count and the delete
            count = self.postgres.execute_scalar(
                "SELECT COUNT(*) FROM properties WHERE owner_id = %s",
                (owner_id,)
            )
            raise OwnerInUseError(owner_id, count or 1) from e

        self.audit.log_change(
            entity_type="owner",
            entity_id=owner_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")}
        )

        logger.info("Deleted owner %s", owner_id)
        return True
