"""Tests for the public cross-reference store."""

import threading
from unittest.mock import MagicMock

import pytest

from ledger_bridge.chain.errors import (
    LedgerOperationContext,
    PatchError,
    RecordAlreadyPatchedError,
    RecordNotFoundError,
    ReservationError,
    SubmissionError,
)
from ledger_bridge.records.store import CrossReferenceStore
from tests.fakes import (
    ALICE,
    BOB,
    PUBLIC_CONTRACT,
    RECORD_RESERVED,
    event_log,
    make_receipt,
    tx_hash,
)


def _submission_error(details: str) -> SubmissionError:
    return SubmissionError(context=LedgerOperationContext("public.send", details))


@pytest.mark.unit
class TestReads:
    def test_get_record(self, store, public_ledger):
        record_id = public_ledger.seed("4", 1_700_000_000, private_tx_id="0xaaa")

        record = store.get_record(record_id)

        assert record.private_tx_id == "0xaaa"
        assert record.subject_id == "4"
        assert record.created_at == 1_700_000_000

    def test_get_record_past_end(self, store):
        with pytest.raises(RecordNotFoundError):
            store.get_record(0)

    def test_get_record_negative(self, store):
        with pytest.raises(ValueError):
            store.get_record(-1)

    def test_list_records_skips_unreadable(self, store, public_ledger):
        public_ledger.seed("1", 100)
        public_ledger.seed("2", 200)
        public_ledger.seed("1", 300)
        public_ledger.unreadable.add(1)

        records = store.list_records()

        assert [r.record_id for r in records] == [0, 2]

    def test_records_for_subject_matches_string_ids(self, store, public_ledger):
        public_ledger.seed("1", 100)
        public_ledger.seed("12", 200)

        assert [r.record_id for r in store.records_for_subject(1)] == [0]

    def test_history_rejects_bad_page(self, store):
        with pytest.raises(ValueError):
            store.history("1", page=0)


@pytest.mark.unit
class TestReserveRecord:
    def test_reserve_writes_placeholder(self, store, public_ledger):
        reservation = store.reserve_record("7", ALICE)

        assert reservation.record_id == 0
        assert reservation.expected_record_id == 0
        assert reservation.tx_hash is not None
        assert public_ledger.records[0].private_tx_id == "pending"
        assert public_ledger.records[0].initiator == ALICE

    def test_record_id_comes_from_event_not_count(self):
        client = MagicMock()
        client.address = PUBLIC_CONTRACT
        client.call_view.return_value = 5
        client.send.return_value = make_receipt(
            tx_hash(), logs=(event_log(PUBLIC_CONTRACT, RECORD_RESERVED, 9, ALICE),)
        )

        reservation = CrossReferenceStore(client).reserve_record("7", ALICE)

        assert reservation.record_id == 9
        assert reservation.expected_record_id == 5
        client.send.assert_called_once_with("reserveRecord", "pending", "7", ALICE)

    def test_unreadable_count_is_only_a_hint(self):
        client = MagicMock()
        client.address = PUBLIC_CONTRACT
        client.call_view.side_effect = _submission_error("connection refused")
        client.send.return_value = make_receipt(
            tx_hash(), logs=(event_log(PUBLIC_CONTRACT, RECORD_RESERVED, 2, ALICE),)
        )

        reservation = CrossReferenceStore(client).reserve_record("7", ALICE)

        assert reservation.record_id == 2
        assert reservation.expected_record_id is None

    def test_failed_transaction_keeps_details(self, store, public_ledger):
        public_ledger.reserve_error = _submission_error("insufficient funds")

        with pytest.raises(ReservationError) as exc_info:
            store.reserve_record("7", ALICE)

        assert exc_info.value.details == "insufficient funds"

    def test_receipt_without_event(self):
        client = MagicMock()
        client.address = PUBLIC_CONTRACT
        client.call_view.return_value = 0
        client.send.return_value = make_receipt(tx_hash(), logs=())

        with pytest.raises(ReservationError, match="no RecordReserved event"):
            CrossReferenceStore(client).reserve_record("7", ALICE)

    def test_concurrent_reservations_get_distinct_ids(self, store):
        ids: list[int] = []
        mutex = threading.Lock()

        def reserve():
            reservation = store.reserve_record("7", BOB)
            with mutex:
                ids.append(reservation.record_id)

        threads = [threading.Thread(target=reserve) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(ids) == list(range(8))


@pytest.mark.unit
class TestPatchRecordHash:
    def test_patch_replaces_placeholder(self, store, public_ledger):
        reservation = store.reserve_record("7", ALICE)

        receipt = store.patch_record_hash(reservation.record_id, "0xreal")

        assert receipt.record_id == reservation.record_id
        assert receipt.block_number == 501
        assert public_ledger.records[0].private_tx_id == "0xreal"

    def test_patched_record_is_refused_before_sending(self, store, public_ledger):
        record_id = public_ledger.seed("7", 100, private_tx_id="0xreal")

        with pytest.raises(RecordAlreadyPatchedError):
            store.patch_record_hash(record_id, "0xother")

        assert public_ledger.patch_calls == []

    def test_concurrent_patch_of_same_record_is_refused(self, store, public_ledger):
        reservation = store.reserve_record("7", ALICE)
        public_ledger.patch_delay = 0.2
        outcomes: list[object] = []

        def patch(value):
            try:
                outcomes.append(store.patch_record_hash(reservation.record_id, value))
            except RecordAlreadyPatchedError as exc:
                outcomes.append(exc)

        first = threading.Thread(target=patch, args=("0xfirst",))
        first.start()
        while not public_ledger.patch_calls:
            first.join(0.01)
        patch("0xsecond")
        first.join()

        assert len(public_ledger.patch_calls) == 1
        assert sum(isinstance(o, RecordAlreadyPatchedError) for o in outcomes) == 1
        assert public_ledger.records[0].private_tx_id == "0xfirst"

    def test_failed_patch_can_be_retried(self, store, public_ledger):
        reservation = store.reserve_record("7", ALICE)
        public_ledger.patch_error = _submission_error("nonce too low")

        with pytest.raises(PatchError, match="nonce too low"):
            store.patch_record_hash(reservation.record_id, "0xreal")

        public_ledger.patch_error = None
        store.patch_record_hash(reservation.record_id, "0xreal")

        assert public_ledger.records[0].private_tx_id == "0xreal"

    def test_unreadable_record_is_patch_error(self, store, public_ledger):
        reservation = store.reserve_record("7", ALICE)
        public_ledger.unreadable.add(reservation.record_id)

        with pytest.raises(PatchError):
            store.patch_record_hash(reservation.record_id, "0xreal")
