"""Test-wallet harness endpoints.

Disabled unless ``[harness] enabled = true``; a disabled harness answers 404
and an unknown ``user_id`` answers 400.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ledger_bridge.api.models import HarnessAddRequest, HarnessEditRequest
from ledger_bridge.api.routes.deps import get_services
from ledger_bridge.confirmation.harness import HarnessRun
from ledger_bridge.confirmation.results import http_status
from ledger_bridge.services.container import BridgeServices

router = APIRouter(prefix="/harness")


def _respond(run: HarnessRun) -> JSONResponse:
    return JSONResponse(status_code=http_status(run.result), content=run.to_payload())


@router.post("/add-item")
def harness_add(request: HarnessAddRequest, services: BridgeServices = Depends(get_services)):
    """Add an item signed by a test wallet, then confirm and sync it."""
    return _respond(services.harness.add_item(str(request.user_id), request.to_draft()))


@router.post("/edit-item")
def harness_edit(request: HarnessEditRequest, services: BridgeServices = Depends(get_services)):
    """Edit an item signed by a test wallet, then confirm and sync it."""
    run = services.harness.edit_item(str(request.user_id), request.item_id, request.to_draft())
    return _respond(run)
