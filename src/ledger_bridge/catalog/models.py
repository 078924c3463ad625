"""Catalog item types read from and written to the private ledger."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class ItemDraft:
    """Field values for an ``addItem`` / ``editItem`` call, in ABI order."""

    name: str
    latin_name: str = ""
    composition: str = ""
    benefits: str = ""
    dosage: str = ""
    preparation: str = ""
    side_effects: str = ""
    ipfs_hash: str = ""

    def as_args(self) -> list[str]:
        return [
            self.name,
            self.latin_name,
            self.composition,
            self.benefits,
            self.dosage,
            self.preparation,
            self.side_effects,
            self.ipfs_hash,
        ]

    def to_payload(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class Item:
    """A catalog item as stored on the private ledger."""

    item_id: int
    draft: ItemDraft
    rating_total: int
    rating_count: int
    like_count: int
    owner: str

    @classmethod
    def from_call(cls, item_id: int, raw: Sequence[Any]) -> Item:
        """Build from the twelve flat ``getItem`` outputs."""
        fields = [str(value) for value in raw[:8]]
        rating_total, rating_count, like_count, owner = raw[8:12]
        return cls(
            item_id=item_id,
            draft=ItemDraft(*fields),
            rating_total=int(rating_total),
            rating_count=int(rating_count),
            like_count=int(like_count),
            owner=str(owner),
        )

    def is_owned_by(self, address: str) -> bool:
        return self.owner.lower() == address.lower()

    def to_payload(self) -> dict[str, Any]:
        return {
            "item_id": str(self.item_id),
            **self.draft.to_payload(),
            "rating_total": str(self.rating_total),
            "rating_count": str(self.rating_count),
            "like_count": str(self.like_count),
            "owner": self.owner,
        }


@dataclass(frozen=True)
class Comment:
    user: str
    comment: str
    timestamp: int

    def to_payload(self) -> dict[str, Any]:
        return {"user": self.user, "comment": self.comment, "timestamp": str(self.timestamp)}
