"""
Audit trail for ledger entity changes.

Every mutation of an owner, reservation billing state, or invoice is logged
here. The audit log is:
- Append-only (entries never modified or deleted)
- Detailed (captures old and new values)
- Transactional when given a cursor: entries written inside the issuance
  transaction commit or roll back together with the change they describe
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    for key in set(old.keys()) | set(new.keys()):
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class AuditLogger:
    """
    Audit trail writer and reader.

    Always pass model_dump(mode="json") output so UUIDs, Decimals and
    datetimes are JSON-compatible.

    Usage:
        audit = AuditLogger(postgres)

        # Standalone write (own transaction)
        audit.log_change("owner", owner.id, AuditAction.CREATE,
                         {"created": owner.model_dump(mode="json")})

        # Inside a larger transaction
        with postgres.transaction() as tx:
            ...
            audit.log_change("invoice", invoice_id, AuditAction.CREATE,
                             {"created": {...}}, tx=tx)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        tx=None
    ) -> None:
        """
        Log an entity change.

        Args:
            entity_type: Type of entity ("owner", "reservation", "invoice")
            entity_id: ID of the entity
            action: The action performed (CREATE, UPDATE, DELETE)
            changes: The changes made (format depends on action)
            tx: Open transaction cursor; when omitted the entry is written
                in its own transaction

        Changes format by action:
        - CREATE: {"created": {full entity data}}
        - UPDATE: {"field": {"old": old_val, "new": new_val}, ...}
        - DELETE: {"deleted": {full entity data at deletion}}
        """
        query = """
            INSERT INTO audit_log (id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
        """
        params = (uuid4(), entity_type, entity_id, action.value, Json(changes), now_utc())

        if tx is not None:
            tx.execute(query, params)
        else:
            self.postgres.execute(query, params)

    def get_entity_history(
        self,
        entity_type: str,
        entity_id: UUID
    ) -> list[dict[str, Any]]:
        """
        Get full audit history for an entity.

        Returns:
            List of audit entries, newest first.
        """
        return self.postgres.execute(
            """
            SELECT id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, entity_id)
        )
