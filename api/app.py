"""Application factory wiring the ledger services behind the HTTP surface."""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url
from core.audit import AuditLogger
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.services.invoice_service import InvoiceService
from core.services.owner_service import OwnerService

logger = logging.getLogger(__name__)


def build_services(postgres: PostgresClient, config: LedgerConfig | None = None, event_bus: EventBus | None = None) -> dict:
    """Construct the service objects shared by all routers."""
    audit = AuditLogger(postgres)
    event_bus = event_bus or EventBus()
    return {
        "invoice": InvoiceService(postgres, audit, event_bus, config),
        "owner": OwnerService(postgres, audit, event_bus),
    }


def create_app(services: dict | None = None, config: LedgerConfig | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    Without explicit services, connects to the database from
    get_database_url() (DATABASE_URL or Vault).
    """
    if services is None:
        services = build_services(PostgresClient(get_database_url()), config)

    app = FastAPI(title="Billing Ledger")
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    logger.info("Billing ledger app created")
    return app
