"""Tests for result payloads and their HTTP mapping."""

import pytest

from ledger_bridge.confirmation.results import (
    TIMEOUT_WARNING,
    ErrResult,
    OkResult,
    VerifiedTransaction,
    WarningResult,
    http_status,
)
from ledger_bridge.confirmation.states import OperationStatus
from ledger_bridge.records.models import PatchReceipt, Reservation

RESERVATION = Reservation(record_id=4, tx_hash="0xres", block_number=10, gas_used=90000)
VERIFIED = VerifiedTransaction(tx_hash="0xpriv", block_number=3, gas_used=21000, sender="0xAaAa")


@pytest.mark.unit
class TestPayloads:
    def test_ok_includes_patch(self):
        result = OkResult(
            status=OperationStatus.SYNCED,
            message="done",
            private_tx_id="0xpriv",
            subject_id="1",
            reservation=RESERVATION,
            verification=VERIFIED,
            patch=PatchReceipt(record_id=4, tx_hash="0xpatch", block_number=11, gas_used=45000),
        )

        payload = result.to_payload()

        assert payload["success"] is True
        assert payload["record_id"] == "4"
        assert payload["private"]["from"] == "0xAaAa"
        assert payload["public"]["patch_tx_hash"] == "0xpatch"
        assert payload["public"]["block_number"] == 11
        assert payload["public"]["reservation_tx_hash"] == "0xres"

    def test_ok_without_patch_keeps_reservation_block(self):
        result = OkResult(
            status=OperationStatus.SYNCED,
            message="done",
            private_tx_id="0xpriv",
            subject_id="1",
            reservation=RESERVATION,
            verification=VERIFIED,
        )

        public = result.to_payload()["public"]

        assert public["patch_tx_hash"] is None
        assert public["block_number"] == 10

    def test_warning_is_success(self):
        result = WarningResult(
            status=OperationStatus.RECORD_TIMEOUT,
            message="partial",
            private_tx_id="0xpriv",
            subject_id="1",
            reservation=RESERVATION,
            warning=TIMEOUT_WARNING,
            is_timeout=True,
            error="timeout",
            verification=VERIFIED,
        )

        payload = result.to_payload()

        assert result.success is True
        assert payload["success"] is True
        assert payload["is_timeout"] is True
        assert payload["warning"] == TIMEOUT_WARNING
        assert payload["public"]["patch_tx_hash"] is None

    def test_error_without_reservation(self):
        result = ErrResult(
            status=OperationStatus.RECORD_FAILED,
            message="Failed to create public record: boom",
            private_tx_id="0xpriv",
            subject_id="1",
            kind="reservation",
            detail="boom",
        )

        payload = result.to_payload()

        assert payload["success"] is False
        assert payload["record_id"] is None
        assert payload["public"] is None
        assert payload["error"] == {"kind": "reservation", "detail": "boom"}


@pytest.mark.unit
class TestHttpStatus:
    def _err(self, status):
        return ErrResult(status=status, message="x", private_tx_id="0x1", subject_id="1")

    def test_verification_failure_is_client_error(self):
        assert http_status(self._err(OperationStatus.VERIFICATION_FAILED)) == 400

    def test_reservation_failure_is_server_error(self):
        assert http_status(self._err(OperationStatus.RECORD_FAILED)) == 500

    def test_warnings_are_ok(self):
        result = WarningResult(
            status=OperationStatus.PATCH_FAILED, message="x", private_tx_id="0x1", subject_id="1"
        )
        assert http_status(result) == 200
