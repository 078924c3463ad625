"""Cross-reference record types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal


@dataclass(frozen=True)
class CrossReferenceRecord:
    """A public-ledger entry linking a private transaction to a subject.

    Attributes:
        record_id:     Id assigned by the public contract at reservation.
        private_tx_id: Placeholder until patched, then the private tx hash.
        subject_id:    Domain entity id (item id) as a string.
        initiator:     Address of the actor that caused the operation.
        created_at:    Reservation block timestamp, seconds since the epoch.
    """

    record_id: int
    private_tx_id: str
    subject_id: str
    initiator: str
    created_at: int

    def is_placeholder(self, placeholder: str) -> bool:
        return self.private_tx_id == placeholder

    def to_payload(self) -> dict[str, Any]:
        return {
            "record_id": str(self.record_id),
            "private_tx_id": self.private_tx_id,
            "subject_id": self.subject_id,
            "initiator": self.initiator,
            "created_at": str(self.created_at),
        }


@dataclass(frozen=True)
class Reservation:
    """Outcome of reserving a placeholder record on the public ledger.

    ``record_id`` comes from the reservation's own ``RecordReserved`` event.
    ``expected_record_id`` is the count read just before reserving and is a
    logging hint only. Transaction fields are ``None`` when the reservation
    was looked up from an existing record rather than made by this process.
    """

    record_id: int
    tx_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    expected_record_id: int | None = None


@dataclass(frozen=True)
class PatchReceipt:
    """Outcome of writing the real private tx id into a record."""

    record_id: int
    tx_hash: str
    block_number: int
    gas_used: int


@dataclass(frozen=True)
class HistoryEntry:
    """A record plus its position-derived classification."""

    record: CrossReferenceRecord
    kind: Literal["creation", "edit"]

    @property
    def formatted_timestamp(self) -> str:
        """UTC creation time as ``"05 Mar 2025, 14:03"``."""
        moment = datetime.fromtimestamp(self.record.created_at, tz=UTC)
        return moment.strftime("%d %b %Y, %H:%M")

    def to_payload(self) -> dict[str, Any]:
        return {
            **self.record.to_payload(),
            "kind": self.kind,
            "formatted_timestamp": self.formatted_timestamp,
        }


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_records: int
    has_next_page: bool
    has_previous_page: bool

    def to_payload(self) -> dict[str, Any]:
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "total_records": self.total_records,
            "has_next_page": self.has_next_page,
            "has_previous_page": self.has_previous_page,
        }


@dataclass(frozen=True)
class HistoryReport:
    """One page of a subject's cross-reference history, newest first."""

    records: list[HistoryEntry] = field(default_factory=list)
    pagination: Pagination = field(
        default_factory=lambda: Pagination(1, 0, 0, False, False)
    )

    def to_payload(self) -> dict[str, Any]:
        return {
            "records": [entry.to_payload() for entry in self.records],
            "pagination": self.pagination.to_payload(),
        }
