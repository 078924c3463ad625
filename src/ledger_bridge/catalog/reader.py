"""Read accessors for catalog items on the private ledger.

These are plain view calls. Nothing here signs or sends a transaction; the
write side of the catalog goes through
:meth:`ledger_bridge.confirmation.engine.ConfirmationEngine.prepare` and the
client's own wallet.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from ledger_bridge.catalog.errors import ItemNotFoundError
from ledger_bridge.catalog.models import Comment, Item
from ledger_bridge.chain.client import LedgerClient

logger = logging.getLogger(__name__)

MAX_RATING = 5.0


@dataclass(frozen=True)
class ItemPage:
    total: int
    current_page: int
    page_size: int
    items: list[Item] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "total": self.total,
            "current_page": self.current_page,
            "page_size": self.page_size,
            "items": [item.to_payload() for item in self.items],
        }


class CatalogReader:
    """View-only access to the private catalog contract."""

    def __init__(self, client: LedgerClient) -> None:
        self._client = client

    def item_count(self) -> int:
        return int(self._client.call_view("itemCount"))

    def get_item(self, item_id: int) -> Item:
        """Read one item.

        Raises:
            ItemNotFoundError: If ``item_id`` is negative or past the last item.
            SubmissionError:   On transport failure.
        """
        if item_id < 0 or item_id >= self.item_count():
            raise ItemNotFoundError(item_id)
        return Item.from_call(item_id, self._client.call_view("getItem", item_id))

    def list_items(self, page: int = 1, limit: int = 10) -> ItemPage:
        """Return one page of items in id order."""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be >= 1")
        total = self.item_count()
        start = (page - 1) * limit
        end = min(start + limit, total)
        items = [
            Item.from_call(item_id, self._client.call_view("getItem", item_id))
            for item_id in range(start, end)
        ]
        return ItemPage(total=total, current_page=page, page_size=limit, items=items)

    def search(
        self,
        name: str = "",
        latin_name: str = "",
        composition: str = "",
        benefits: str = "",
    ) -> list[Item]:
        """Items matching the given fields, as judged by the contract.

        Empty criteria are passed through as empty strings; the contract
        treats them as "any".
        """
        item_ids, raw_items = self._client.call_view(
            "searchItems", name, latin_name, composition, benefits
        )
        items = [Item.from_call(int(item_id), raw) for item_id, raw in zip(item_ids, raw_items)]
        logger.info("Search matched %d item(s)", len(items))
        return items

    def user_rating(self, item_id: int, user: str) -> int:
        """The rating ``user`` gave ``item_id``, or ``0`` if none."""
        return int(self._client.call_view("itemRatings", item_id, user))

    def ratings(self, item_id: int) -> list[int]:
        return [int(value) for value in self._client.call_view("getItemRatings", item_id)]

    def average_rating(self, item_id: int) -> float:
        """Mean rating clamped to ``[0, 5]`` and rounded half-up to one decimal.

        An item with no ratings averages ``0``.
        """
        item = self.get_item(item_id)
        if item.rating_count <= 0:
            return 0.0
        mean = item.rating_total / item.rating_count
        clamped = max(0.0, min(MAX_RATING, mean))
        return math.floor(clamped * 10 + 0.5) / 10

    def comments(self, item_id: int) -> list[Comment]:
        raw = self._client.call_view("getItemComments", item_id)
        return [
            Comment(user=str(user), comment=str(text), timestamp=int(timestamp))
            for user, text, timestamp in raw
        ]
