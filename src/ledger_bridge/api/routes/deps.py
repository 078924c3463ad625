"""Shared helpers for API route modules."""

from fastapi import Request
from fastapi.responses import JSONResponse

from ledger_bridge.confirmation.results import ConfirmationResult, http_status
from ledger_bridge.services.container import BridgeServices


def get_services(request: Request) -> BridgeServices:
    """Return the service container attached to the running app."""
    services = request.app.state.services
    if services is None:
        raise RuntimeError("Services are not initialised")
    return services


def result_response(result: ConfirmationResult) -> JSONResponse:
    """Serialise any confirmation result with its HTTP status."""
    return JSONResponse(status_code=http_status(result), content=result.to_payload())
