"""Catalog items on the private ledger: drafts, reads, and lookup errors."""

from ledger_bridge.catalog.errors import CatalogError, ItemNotFoundError, NotItemOwnerError
from ledger_bridge.catalog.models import Comment, Item, ItemDraft
from ledger_bridge.catalog.reader import CatalogReader, ItemPage

__all__ = [
    "CatalogError",
    "CatalogReader",
    "Comment",
    "Item",
    "ItemDraft",
    "ItemNotFoundError",
    "ItemPage",
    "NotItemOwnerError",
]
