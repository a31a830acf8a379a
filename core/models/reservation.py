"""Reservation domain models (billing-relevant columns only)."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class ReservationStatus(str, Enum):
    """Reservation lifecycle status. PAID is terminal for billing."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELLED = "cancelled"


class Reservation(BaseModel):
    """Reservation as stored. invoice_number is set if and only if status is PAID."""

    id: UUID
    property_id: UUID
    status: ReservationStatus
    price: Decimal | None
    payment_method: str | None
    invoice_number: str | None
    invoice_date: date | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_billed(self) -> bool:
        return self.status == ReservationStatus.PAID
