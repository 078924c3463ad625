"""
Pydantic models for API requests and responses.

Request models validate what callers send. Confirmation results are not
modelled here: the engine's tagged results serialise themselves through
``to_payload()`` so every branch shares one shape.

Ids that the ledgers treat as strings (``subject_id``) accept either a JSON
string or a number.
"""

from typing import Literal

from pydantic import BaseModel, Field

from ledger_bridge.catalog.models import ItemDraft

# ============================================================================
# REQUEST MODELS (Client → Server)
# ============================================================================


class ItemFields(BaseModel):
    """
    Catalog item fields, in contract argument order.

    Attributes:
        name: Common name of the item (required).
        latin_name: Scientific name.
        composition: Active compounds.
        benefits: Claimed benefits.
        dosage: Recommended dosage.
        preparation: How the item is prepared.
        side_effects: Known side effects.
        ipfs_hash: CID of the item's image on IPFS.
    """

    name: str = Field(min_length=1)
    latin_name: str = ""
    composition: str = ""
    benefits: str = ""
    dosage: str = ""
    preparation: str = ""
    side_effects: str = ""
    ipfs_hash: str = ""

    def to_draft(self) -> ItemDraft:
        return ItemDraft(
            name=self.name,
            latin_name=self.latin_name,
            composition=self.composition,
            benefits=self.benefits,
            dosage=self.dosage,
            preparation=self.preparation,
            side_effects=self.side_effects,
            ipfs_hash=self.ipfs_hash,
        )


class PrepareAddRequest(ItemFields):
    """Encode an ``addItem`` call for ``initiator``'s wallet to sign."""

    initiator: str


class PrepareEditRequest(ItemFields):
    """Encode an ``editItem`` call. ``initiator`` must own ``item_id``."""

    initiator: str
    item_id: int = Field(ge=0)


class PrepareLikeRequest(BaseModel):
    """Encode a ``likeItem`` call for ``initiator``'s wallet to sign."""

    initiator: str = Field(min_length=1)
    item_id: int = Field(ge=0)


class PrepareRatingRequest(PrepareLikeRequest):
    """Encode a ``rateItem`` call. Ratings run from 1 to 5."""

    rating: int = Field(ge=1, le=5)


class PrepareCommentRequest(PrepareLikeRequest):
    """Encode a ``commentItem`` call."""

    comment: str = Field(min_length=1)


class ConfirmRequest(BaseModel):
    """
    Hand a submitted private transaction back for confirmation.

    Attributes:
        private_tx_id: Hash of the transaction the caller's wallet submitted.
        subject_id: Item id the transaction created or edited.
        initiator: Address that signed the transaction.
        expected_event_signature: Override for the event to look for.
        timeout_seconds: Time budget for this call. Capped at the server's
            ``request_timeout_seconds``.
    """

    private_tx_id: str = Field(min_length=1)
    subject_id: str | int
    initiator: str = Field(min_length=1)
    expected_event_signature: str | None = None
    timeout_seconds: float | None = Field(default=None, gt=0)


class ResyncRequest(BaseModel):
    """Retry verification and patching for an existing public record."""

    private_tx_id: str = Field(min_length=1)
    initiator: str = Field(min_length=1)
    kind: Literal["add", "edit"] = "add"
    expected_event_signature: str | None = None
    timeout_seconds: float | None = Field(default=None, gt=0)


class HarnessAddRequest(ItemFields):
    """Add an item signed by test wallet ``user_id`` (1-based)."""

    user_id: str | int


class HarnessEditRequest(ItemFields):
    """Edit an item signed by test wallet ``user_id`` (1-based)."""

    user_id: str | int
    item_id: int = Field(ge=0)


# ============================================================================
# RESPONSE MODELS (Server → Client)
# ============================================================================


class HealthResponse(BaseModel):
    status: str
    private_contract: str
    public_contract: str


class CountResponse(BaseModel):
    success: bool = True
    count: int


class AverageRatingResponse(BaseModel):
    success: bool = True
    item_id: str
    average_rating: float


class RatingsResponse(BaseModel):
    success: bool = True
    item_id: str
    ratings: list[int]
