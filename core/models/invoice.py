"""Invoice domain models.

Amounts are Decimal with two places, matching NUMERIC(12, 2) in the store.
Invoices are immutable: there is no update model.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class PaymentMethod(str, Enum):
    """How a reservation was paid."""

    CASH = "cash"
    BANK = "bank"


class InvoiceIssue(BaseModel):
    """Data required to issue an invoice for a reservation."""

    reservation_id: UUID
    payment_method: PaymentMethod
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    reservation_id: UUID
    invoice_number: str
    issue_date: datetime
    paid_date: datetime
    amount: Decimal
    payment_method: PaymentMethod
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def sequence_number(self) -> int:
        """Numeric part of the invoice number (e.g. 42 for INV-000042)."""
        return int(self.invoice_number.rsplit("-", 1)[-1])
