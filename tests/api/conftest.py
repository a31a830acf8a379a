"""API test fixtures: TestClient over mocked ledger services.

Service behaviour is covered against a real database in tests/core; here
the services are Mocks so the HTTP mapping can be checked without one.
"""

from decimal import Decimal
from unittest.mock import Mock
from uuid import uuid4

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from core.models import Invoice, Owner, PaymentMethod, Reservation
from core.services.invoice_service import InvoiceService
from core.services.owner_service import OwnerService
from core.services.reservation_gate import ReservationGate
from utils.timezone import now_utc


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def invoice_service():
    service = Mock(spec=InvoiceService)
    service.gate = Mock(spec=ReservationGate)
    return service


@pytest.fixture
def owner_service():
    return Mock(spec=OwnerService)


@pytest.fixture
def services(invoice_service, owner_service):
    return {"invoice": invoice_service, "owner": owner_service}


# =============================================================================
# SAMPLE ENTITIES
# =============================================================================


@pytest.fixture
def sample_invoice():
    now = now_utc()
    return Invoice(
        id=uuid4(), reservation_id=uuid4(), invoice_number="INV-000001",
        issue_date=now, paid_date=now, amount=Decimal("120.00"),
        payment_method=PaymentMethod.CASH, created_at=now,
    )


@pytest.fixture
def sample_owner():
    now = now_utc()
    return Owner(
        id=uuid4(), name="Ana Ruiz", tax_id="12345678Z", phone=None,
        invoice_series="AR", last_invoice_number=3,
        created_at=now, updated_at=now,
    )


@pytest.fixture
def sample_reservation(sample_invoice):
    now = now_utc()
    return Reservation(
        id=sample_invoice.reservation_id, property_id=uuid4(), status="paid",
        price=Decimal("120.00"), payment_method="cash",
        invoice_number=sample_invoice.invoice_number, invoice_date=now.date(),
        created_at=now, updated_at=now,
    )


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    """Full app: request IDs, error handlers, data and actions routes."""
    return create_app(services)


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)
