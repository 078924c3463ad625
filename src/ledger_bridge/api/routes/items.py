"""Catalog endpoints: prepare/confirm for add and edit, item reads and search.

``prepare-*`` returns ABI-encoded call data for the caller's wallet.
``confirm-*`` takes the submitted transaction back and runs the confirmation
engine; its status code follows the result (200 for success and partial
success, 400 for a failed verification, 500 for a failed reservation).

``prepare-rate``, ``prepare-like`` and ``prepare-comment`` only encode; those
writes have no public record and nothing to confirm.
"""

from fastapi import APIRouter, Depends, Query

from ledger_bridge.api.models import (
    AverageRatingResponse,
    ConfirmRequest,
    PrepareAddRequest,
    PrepareCommentRequest,
    PrepareEditRequest,
    PrepareLikeRequest,
    PrepareRatingRequest,
    RatingsResponse,
)
from ledger_bridge.api.routes.deps import get_services, result_response
from ledger_bridge.confirmation.states import OperationKind
from ledger_bridge.services.container import BridgeServices

router = APIRouter()


def _confirm(services: BridgeServices, request: ConfirmRequest, kind: OperationKind):
    result = services.engine.confirm_and_sync(
        request.private_tx_id,
        str(request.subject_id),
        request.initiator,
        request.expected_event_signature,
        kind=kind,
        deadline=services.engine.deadline_for(request.timeout_seconds),
    )
    return result_response(result)


@router.post("/prepare-add")
def prepare_add(request: PrepareAddRequest, services: BridgeServices = Depends(get_services)):
    """Encode an ``addItem`` call for the initiator's wallet."""
    prepared = services.engine.prepare(
        OperationKind.ADD, request.to_draft(), initiator=request.initiator
    )
    return prepared.to_payload()


@router.post("/confirm-add")
def confirm_add(request: ConfirmRequest, services: BridgeServices = Depends(get_services)):
    """Verify a submitted ``addItem`` and mirror it to the public ledger."""
    return _confirm(services, request, OperationKind.ADD)


@router.post("/prepare-edit")
def prepare_edit(request: PrepareEditRequest, services: BridgeServices = Depends(get_services)):
    """Encode an ``editItem`` call. The initiator must own the item."""
    prepared = services.engine.prepare(
        OperationKind.EDIT,
        request.to_draft(),
        initiator=request.initiator,
        item_id=request.item_id,
    )
    return prepared.to_payload()


@router.post("/confirm-edit")
def confirm_edit(request: ConfirmRequest, services: BridgeServices = Depends(get_services)):
    """Verify a submitted ``editItem`` and mirror it to the public ledger."""
    return _confirm(services, request, OperationKind.EDIT)


# ── Interactions ──────────────────────────────────────────────────────────────


@router.post("/prepare-rate")
def prepare_rate(request: PrepareRatingRequest, services: BridgeServices = Depends(get_services)):
    """Encode a ``rateItem`` call (1 to 5) for the initiator's wallet."""
    prepared = services.engine.prepare_rating(
        request.item_id, request.rating, initiator=request.initiator
    )
    return prepared.to_payload()


@router.post("/prepare-like")
def prepare_like(request: PrepareLikeRequest, services: BridgeServices = Depends(get_services)):
    prepared = services.engine.prepare_like(request.item_id, initiator=request.initiator)
    return prepared.to_payload()


@router.post("/prepare-comment")
def prepare_comment(
    request: PrepareCommentRequest, services: BridgeServices = Depends(get_services)
):
    prepared = services.engine.prepare_comment(
        request.item_id, request.comment, initiator=request.initiator
    )
    return prepared.to_payload()


# ── Reads ─────────────────────────────────────────────────────────────────────


@router.get("/search")
def search_items(
    name: str = "",
    latin_name: str = "",
    composition: str = "",
    benefits: str = "",
    services: BridgeServices = Depends(get_services),
):
    """Search items by name, Latin name, composition and benefits."""
    items = services.catalog.search(name, latin_name, composition, benefits)
    return {"success": True, "items": [item.to_payload() for item in items]}


@router.get("/items")
def list_items(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: BridgeServices = Depends(get_services),
):
    """Page through catalog items in id order."""
    return {"success": True, **services.catalog.list_items(page, limit).to_payload()}


@router.get("/items/{item_id}")
def get_item(item_id: int, services: BridgeServices = Depends(get_services)):
    return {"success": True, "item": services.catalog.get_item(item_id).to_payload()}


@router.get("/items/{item_id}/ratings", response_model=RatingsResponse)
def get_ratings(item_id: int, services: BridgeServices = Depends(get_services)):
    return RatingsResponse(item_id=str(item_id), ratings=services.catalog.ratings(item_id))


@router.get("/items/{item_id}/average-rating", response_model=AverageRatingResponse)
def get_average_rating(item_id: int, services: BridgeServices = Depends(get_services)):
    return AverageRatingResponse(
        item_id=str(item_id), average_rating=services.catalog.average_rating(item_id)
    )


@router.get("/items/{item_id}/comments")
def get_comments(item_id: int, services: BridgeServices = Depends(get_services)):
    comments = services.catalog.comments(item_id)
    return {"success": True, "comments": [comment.to_payload() for comment in comments]}
