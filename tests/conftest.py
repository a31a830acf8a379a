"""Shared test fixtures for the billing ledger test suite."""

from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

import psycopg2
import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

SCHEMA_PATH = Path(__file__).parent.parent / "db" / "schema.sql"

# Ledger tables, truncated before every database test
_LEDGER_TABLES = "invoices, reservations, properties, owners, audit_log"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db_session():
    """
    Session-scoped PostgresClient with the ledger schema applied.

    Skips database tests when no database is configured (DATABASE_URL or
    Vault) or the server is unreachable.
    """
    from clients.postgres_client import PostgresClient
    from clients.vault_client import get_database_url

    try:
        url = get_database_url()
    except (ValueError, PermissionError, KeyError) as e:
        pytest.skip(f"No database configured: {e}")

    try:
        client = PostgresClient(url)
    except psycopg2.OperationalError as e:
        pytest.skip(f"Database unreachable: {e}")

    client.execute_script(SCHEMA_PATH.read_text())
    yield client
    client.close()


@pytest.fixture
def db(db_session):
    """PostgresClient on a freshly truncated ledger schema."""
    db_session.execute(f"TRUNCATE {_LEDGER_TABLES} CASCADE")
    return db_session


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def audit(db):
    from core.audit import AuditLogger
    return AuditLogger(db)


@pytest.fixture
def event_bus():
    from core.event_bus import EventBus
    return EventBus()


@pytest.fixture
def invoice_service(db, audit, event_bus):
    from core.services.invoice_service import InvoiceService
    return InvoiceService(db, audit, event_bus)


@pytest.fixture
def owner_service(db, audit, event_bus):
    from core.services.owner_service import OwnerService
    return OwnerService(db, audit, event_bus)


# =============================================================================
# ENTITY FACTORIES
# =============================================================================
#
# Properties and reservations belong to the booking layer, so tests insert
# them directly.


@pytest.fixture
def make_owner(db):
    """Insert an owner row and return its id."""

    def _make(invoice_series: str | None = "INV", last_invoice_number: int = 0, name: str = "Ledger Owner") -> UUID:
        owner_id = uuid4()
        db.execute(
            """
            INSERT INTO owners (id, name, invoice_series, last_invoice_number)
            VALUES (%s, %s, %s, %s)
            """,
            (owner_id, name, invoice_series, last_invoice_number),
        )
        return owner_id

    return _make


@pytest.fixture
def make_property(db):
    """Insert a property under an owner and return its id."""

    def _make(owner_id: UUID, name: str = "Calle Mayor 1") -> UUID:
        property_id = uuid4()
        db.execute(
            "INSERT INTO properties (id, owner_id, name) VALUES (%s, %s, %s)",
            (property_id, owner_id, name),
        )
        return property_id

    return _make


@pytest.fixture
def make_reservation(db):
    """Insert an unbilled reservation and return its id."""

    def _make(property_id: UUID, status: str = "confirmed", price: Decimal | None = Decimal("100.00")) -> UUID:
        reservation_id = uuid4()
        db.execute(
            """
            INSERT INTO reservations (id, property_id, status, price, payment_method)
            VALUES (%s, %s, %s, %s, 'pending')
            """,
            (reservation_id, property_id, status, price),
        )
        return reservation_id

    return _make


@pytest.fixture
def owner_id(make_owner):
    """Fresh owner: series INV, counter at 0."""
    return make_owner()


@pytest.fixture
def property_id(make_property, owner_id):
    return make_property(owner_id)


@pytest.fixture
def reservation_id(make_reservation, property_id):
    return make_reservation(property_id)
