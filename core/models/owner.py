"""Owner domain models.

An owner row doubles as the invoice ledger row: invoice_series and
last_invoice_number drive invoice numbering for every property the owner
holds. last_invoice_number is never part of a create or update payload.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

_SERIES_PATTERN = r"^[A-Za-z0-9]+$"


class OwnerCreate(BaseModel):
    """Data required to create an owner. The counter always starts at 0."""

    name: str = Field(..., min_length=1, max_length=200)
    tax_id: str | None = Field(None, max_length=50)
    phone: str | None = Field(None, max_length=50)
    invoice_series: str | None = Field(None, min_length=1, max_length=10, pattern=_SERIES_PATTERN)


class OwnerUpdate(BaseModel):
    """Fields that can be updated on an owner. All optional."""

    name: str | None = Field(None, min_length=1, max_length=200)
    tax_id: str | None = Field(None, max_length=50)
    phone: str | None = Field(None, max_length=50)
    invoice_series: str | None = Field(None, min_length=1, max_length=10, pattern=_SERIES_PATTERN)


class Owner(BaseModel):
    """Full owner entity as stored."""

    id: UUID
    name: str
    tax_id: str | None
    phone: str | None
    invoice_series: str | None
    last_invoice_number: int = Field(..., ge=0)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
