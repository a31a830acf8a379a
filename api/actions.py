"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import OwnerCreate, OwnerUpdate


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"]),
        "owner": OwnerHandler(services["owner"]),
    }

    # Sync endpoint: FastAPI runs it on a worker thread, so concurrent
    # issuances block in the database lock queue, not on the event loop.
    @router.post("/actions")
    def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(body.data)
        return success_response(result, getattr(request.state, "request_id", None)).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER CLASSES
# =============================================================================


def _require(data: dict, key: str):
    if key not in data:
        raise ValueError(f"'{key}' is required")
    return data[key]


def _require_uuid(data: dict, key: str) -> UUID:
    value = _require(data, key)
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a UUID string, got {type(value).__name__}")
    return UUID(value)


class InvoiceHandler:
    """Invoices are create-only: the single action is issue."""

    ALLOWED_ACTIONS = {"issue"}

    def __init__(self, service):
        self.service = service

    def _handle_issue(self, data: dict):
        invoice = self.service.issue(
            _require_uuid(data, "reservation_id"),
            _require(data, "payment_method"),
            _require(data, "amount"),
        )
        return invoice.model_dump(mode="json")


class OwnerHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        owner = self.service.create(OwnerCreate(**data))
        return owner.model_dump(mode="json")

    def _handle_update(self, data: dict):
        owner_id = _require_uuid(data, "id")
        data.pop("id")
        owner = self.service.update(owner_id, OwnerUpdate(**data))
        return owner.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        owner_id = _require_uuid(data, "id")
        deleted = self.service.delete(owner_id)
        if not deleted:
            raise ValueError(f"Owner {owner_id} not found")
        return {"deleted": True}
