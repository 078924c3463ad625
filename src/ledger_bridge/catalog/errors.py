"""Catalog lookup errors raised while preparing edits and reading items."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog lookup failures."""


class ItemNotFoundError(CatalogError):
    """The item id does not exist or could not be read."""

    def __init__(self, item_id: int | str) -> None:
        super().__init__(f"Item {item_id} not found or item id is invalid")
        self.item_id = item_id


class NotItemOwnerError(CatalogError):
    """The initiator does not own the item it is trying to edit."""

    def __init__(self, item_id: int | str, initiator: str) -> None:
        super().__init__(f"{initiator} is not allowed to edit item {item_id}")
        self.item_id = item_id
        self.initiator = initiator
