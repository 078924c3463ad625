"""Public-ledger record endpoints: reads, subject history, and patch retry."""

from fastapi import APIRouter, Depends, Query

from ledger_bridge.api.models import CountResponse, ResyncRequest
from ledger_bridge.api.routes.deps import get_services, result_response
from ledger_bridge.confirmation.states import OperationKind
from ledger_bridge.records.history import DEFAULT_PAGE_SIZE
from ledger_bridge.services.container import BridgeServices

router = APIRouter(prefix="/public")


@router.get("/records/count", response_model=CountResponse)
def count_records(services: BridgeServices = Depends(get_services)):
    return CountResponse(count=services.store.count_records())


@router.get("/records")
def list_records(services: BridgeServices = Depends(get_services)):
    """All readable records; unreadable ones are skipped."""
    records = services.store.list_records()
    return {
        "success": True,
        "total": len(records),
        "records": [record.to_payload() for record in records],
    }


@router.get("/records/{record_id}")
def get_record(record_id: int, services: BridgeServices = Depends(get_services)):
    return {"success": True, "record": services.store.get_record(record_id).to_payload()}


@router.get("/history/{subject_id}")
def subject_history(
    subject_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    services: BridgeServices = Depends(get_services),
):
    """One page of a subject's records, newest first, labelled creation/edit."""
    report = services.store.history(subject_id, page=page, limit=limit)
    return {"success": True, "subject_id": subject_id, **report.to_payload()}


@router.post("/records/{record_id}/resync")
def resync_record(
    record_id: int,
    request: ResyncRequest,
    services: BridgeServices = Depends(get_services),
):
    """Re-run verification and the patch race for an existing record."""
    result = services.engine.resync(
        record_id,
        request.private_tx_id,
        request.initiator,
        request.expected_event_signature,
        kind=OperationKind(request.kind),
        deadline=services.engine.deadline_for(request.timeout_seconds),
    )
    return result_response(result)
