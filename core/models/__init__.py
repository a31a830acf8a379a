"""Core domain models."""

from core.models.owner import Owner, OwnerCreate, OwnerUpdate
from core.models.reservation import Reservation, ReservationStatus
from core.models.invoice import Invoice, InvoiceIssue, PaymentMethod

__all__ = [
    # Owner
    "Owner", "OwnerCreate", "OwnerUpdate",
    # Reservation
    "Reservation", "ReservationStatus",
    # Invoice
    "Invoice", "InvoiceIssue", "PaymentMethod",
]
