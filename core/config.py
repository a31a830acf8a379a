"""Billing ledger configuration."""

from pydantic import BaseModel, Field


class LedgerConfig(BaseModel):
    """
    Billing ledger configuration.

    Defaults match production. lock_timeout_ms is unset by default: a
    blocked issuance waits in PostgreSQL's lock queue until the holder
    commits or rolls back.
    """

    # Invoice numbering
    invoice_number_width: int = Field(
        default=6,
        description="Zero-padded width of the sequence part of an invoice number",
        ge=3,
        le=12,
    )

    # Locking
    lock_timeout_ms: int | None = Field(
        default=None,
        description="Per-transaction lock_timeout for issuance; None waits indefinitely",
        ge=1,
    )

    # Query surface
    default_page_size: int = Field(
        default=100,
        description="Invoices returned by list_all when no limit is given",
        ge=1,
        le=500,
    )
    max_page_size: int = Field(
        default=500,
        description="Largest accepted limit for list_all",
        ge=1,
        le=5000,
    )
