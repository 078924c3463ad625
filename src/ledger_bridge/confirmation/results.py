"""Tagged results returned by the confirmation engine.

Every ``confirm_and_sync`` call ends in exactly one of three shapes:

- :class:`OkResult`      - verified on the private ledger and synced to the
                           public ledger.
- :class:`WarningResult` - the private effect stands but the public side is
                           incomplete (patch timed out, patch failed, record
                           unreadable) or verification was inconclusive.
                           ``success`` is still ``True``.
- :class:`ErrResult`     - nothing durable happened on the private side, or
                           the placeholder could not be reserved.

All three serialise through ``to_payload()`` with the same top-level keys, so
the API layer never branches on shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from ledger_bridge.confirmation.states import OperationStatus
from ledger_bridge.records.models import PatchReceipt, Reservation

TIMEOUT_WARNING = "Private transaction succeeded but the public network timed out (congested)"
PATCH_FAILED_WARNING = "Private transaction succeeded but the public record could not be updated"
RECORD_UNREADABLE_WARNING = "Private transaction succeeded but the public record could not be read back"
INCONCLUSIVE_WARNING = (
    "Private transaction could not be verified yet; the public record still holds the placeholder"
)


@dataclass(frozen=True)
class VerifiedTransaction:
    """Metadata from a verified private-ledger receipt."""

    tx_hash: str
    block_number: int
    gas_used: int
    sender: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "gas_used": self.gas_used,
            "from": self.sender,
        }


def _public_payload(
    reservation: Reservation | None, patch: PatchReceipt | None
) -> dict[str, Any] | None:
    if reservation is None:
        return None
    payload: dict[str, Any] = {
        "record_id": str(reservation.record_id),
        "reservation_tx_hash": reservation.tx_hash,
        "block_number": reservation.block_number,
        "gas_used": reservation.gas_used,
        "patch_tx_hash": None,
    }
    if patch is not None:
        payload.update(
            patch_tx_hash=patch.tx_hash,
            block_number=patch.block_number,
            gas_used=patch.gas_used,
        )
    return payload


@dataclass(frozen=True)
class _ResultBase:
    status: OperationStatus
    message: str
    private_tx_id: str
    subject_id: str
    reservation: Reservation | None = None

    @property
    def record_id(self) -> int | None:
        return self.reservation.record_id if self.reservation else None

    def _base_payload(self, success: bool) -> dict[str, Any]:
        return {
            "success": success,
            "message": self.message,
            "status": self.status.value,
            "private_tx_id": self.private_tx_id,
            "subject_id": self.subject_id,
            "record_id": None if self.record_id is None else str(self.record_id),
        }


@dataclass(frozen=True)
class OkResult(_ResultBase):
    verification: VerifiedTransaction | None = None
    patch: PatchReceipt | None = None

    @property
    def success(self) -> bool:
        return True

    def to_payload(self) -> dict[str, Any]:
        payload = self._base_payload(True)
        payload["private"] = self.verification.to_payload() if self.verification else None
        payload["public"] = _public_payload(self.reservation, self.patch)
        return payload


@dataclass(frozen=True)
class WarningResult(_ResultBase):
    warning: str = ""
    is_timeout: bool = False
    error: str | None = None
    verification: VerifiedTransaction | None = None

    @property
    def success(self) -> bool:
        return True

    def to_payload(self) -> dict[str, Any]:
        payload = self._base_payload(True)
        payload.update(
            warning=self.warning,
            is_timeout=self.is_timeout,
            error=self.error,
            private=self.verification.to_payload() if self.verification else None,
            public=_public_payload(self.reservation, None),
        )
        return payload


@dataclass(frozen=True)
class ErrResult(_ResultBase):
    kind: Literal["verification", "reservation", "sender_mismatch"] = "verification"
    detail: Any = None

    @property
    def success(self) -> bool:
        return False

    def to_payload(self) -> dict[str, Any]:
        payload = self._base_payload(False)
        payload["error"] = {"kind": self.kind, "detail": self.detail}
        payload["public"] = _public_payload(self.reservation, None)
        return payload


ConfirmationResult = OkResult | WarningResult | ErrResult


def http_status(result: ConfirmationResult) -> int:
    """HTTP status for a result: 200 on success, 400/500 on failure."""
    if result.success:
        return 200
    if result.status is OperationStatus.VERIFICATION_FAILED:
        return 400
    return 500
