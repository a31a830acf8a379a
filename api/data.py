"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response


VALID_TYPES = {"invoices", "owners", "reservations"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    owner_svc = services["owner"]

    @router.get("/data")
    def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        reservation_id: str | None = Query(None),
        # Paging bounds come from LedgerConfig; list_all enforces them
        limit: int | None = Query(None),
        offset: int = Query(0),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "invoices":
            data = _handle_invoices(invoice_svc, id, reservation_id, limit, offset)
        elif type == "owners":
            data = _handle_owners(owner_svc, id)
        else:
            data = _handle_reservations(invoice_svc, id)

        return success_response(data, getattr(request.state, "request_id", None)).model_dump(mode="json")

    return router


def _handle_invoices(invoice_svc, id, reservation_id, limit, offset):
    if id:
        invoice = invoice_svc.get_by_id(UUID(id))
        if invoice is None:
            raise ValueError(f"Invoice {id} not found")
        return invoice.model_dump(mode="json")

    if reservation_id:
        invoices = invoice_svc.list_for_reservation(UUID(reservation_id))
    else:
        invoices = invoice_svc.list_all(limit, offset)

    return [i.model_dump(mode="json") for i in invoices]


def _handle_owners(owner_svc, id):
    if id:
        owner = owner_svc.get_by_id(UUID(id))
        if owner is None:
            raise ValueError(f"Owner {id} not found")
        return owner.model_dump(mode="json")

    return [o.model_dump(mode="json") for o in owner_svc.list_all()]


def _handle_reservations(invoice_svc, id):
    """Billing view of a reservation: status, invoice number and invoice date."""
    if not id:
        raise ValueError("'reservations' type requires 'id' parameter")

    reservation = invoice_svc.gate.get(UUID(id))
    if reservation is None:
        raise ValueError(f"Reservation {id} not found")

    return reservation.model_dump(mode="json")
