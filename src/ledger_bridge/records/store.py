"""Cross-reference store on the public ledger.

``CrossReferenceStore`` is a typed accessor over the public record contract,
reached through a :class:`~ledger_bridge.chain.client.LedgerClient`.

Write path
----------
1. :meth:`reserve_record` reads ``recordCount()`` as an *expected* id for
   logging, sends ``reserveRecord(placeholder, subjectId, initiator)`` and takes
   the true id from the receipt's ``RecordReserved`` event. The count read is
   not atomic with the reservation: two concurrent reservations may log the
   same expected id. Only the event id is ever used as an index.
2. :meth:`patch_record_hash` replaces the placeholder with the real private
   transaction id. A record is patched at most once: the store refuses when
   the record no longer holds the placeholder, and refuses a second patch of
   the same record while one is still in flight in this process.

Read path
---------
:meth:`list_records` scans ``0..recordCount-1``; a record that fails to read
is logged and skipped. :meth:`history` classifies and paginates one subject's
records (see :mod:`ledger_bridge.records.history`).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from ledger_bridge.chain.client import LedgerClient
from ledger_bridge.chain.errors import (
    LedgerError,
    LedgerOperationContext,
    PatchError,
    RecordAlreadyPatchedError,
    RecordNotFoundError,
    ReservationError,
    SubmissionError,
)
from ledger_bridge.chain.events import find_event
from ledger_bridge.records.history import DEFAULT_PAGE_SIZE, build_history_report
from ledger_bridge.records.models import (
    CrossReferenceRecord,
    HistoryReport,
    PatchReceipt,
    Reservation,
)

logger = logging.getLogger(__name__)

RECORD_RESERVED_EVENT = "RecordReserved(uint256,string,address)"

DEFAULT_PLACEHOLDER = "pending"


def _parse_record(record_id: int, raw: Sequence[Any]) -> CrossReferenceRecord:
    """Build a record from ``getRecord`` outputs ``(hash, subject, initiator, ts)``."""
    private_tx_id, subject_id, initiator, timestamp = raw
    return CrossReferenceRecord(
        record_id=record_id,
        private_tx_id=str(private_tx_id),
        subject_id=str(subject_id),
        initiator=str(initiator),
        created_at=int(timestamp),
    )


class CrossReferenceStore:
    """Typed access to the public record table.

    Attributes:
        placeholder: Sentinel written into a record's hash field at
                     reservation time.
    """

    def __init__(self, client: LedgerClient, *, placeholder: str = DEFAULT_PLACEHOLDER) -> None:
        self._client = client
        self.placeholder = placeholder
        # Records with a patch transaction in flight from this process.
        self._in_flight: set[int] = set()
        self._in_flight_mutex = threading.Lock()

    # ── Reads ─────────────────────────────────────────────────────────────────

    def count_records(self) -> int:
        return int(self._client.call_view("recordCount"))

    def get_record(self, record_id: int) -> CrossReferenceRecord:
        """Read one record.

        Raises:
            ValueError:          If ``record_id`` is negative.
            RecordNotFoundError: If ``record_id`` is past the end of the table.
            SubmissionError:     On transport failure.
        """
        if record_id < 0:
            raise ValueError("record_id must be >= 0")
        total = self.count_records()
        if record_id >= total:
            raise RecordNotFoundError(
                context=LedgerOperationContext(
                    "public.getRecord", f"record {record_id} does not exist ({total} records)"
                )
            )
        return _parse_record(record_id, self._client.call_view("getRecord", record_id))

    def list_records(self) -> list[CrossReferenceRecord]:
        """Read every record, skipping any that fail to read."""
        total = self.count_records()
        records: list[CrossReferenceRecord] = []
        for record_id in range(total):
            try:
                raw = self._client.call_view("getRecord", record_id)
                records.append(_parse_record(record_id, raw))
            except (LedgerError, ValueError, TypeError) as exc:
                logger.warning("Skipping unreadable record %d: %s", record_id, exc)
        return records

    def records_for_subject(self, subject_id: str) -> list[CrossReferenceRecord]:
        wanted = str(subject_id)
        return [record for record in self.list_records() if record.subject_id == wanted]

    def history(
        self, subject_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> HistoryReport:
        """Return one page of ``subject_id``'s history, newest first.

        Raises:
            ValueError: If ``page`` or ``limit`` is below 1.
        """
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be >= 1")
        records = self.records_for_subject(subject_id)
        logger.debug("Found %d record(s) for subject %s", len(records), subject_id)
        return build_history_report(records, page=page, limit=limit)

    # ── Writes ────────────────────────────────────────────────────────────────

    def reserve_record(self, subject_id: str, initiator: str) -> Reservation:
        """Reserve a placeholder record for ``subject_id``.

        Returns:
            The :class:`Reservation`, whose ``record_id`` comes from the
            ``RecordReserved`` event of the reservation receipt.

        Raises:
            ReservationError: If the transaction fails, or its receipt does not
                              carry the reservation event. The underlying
                              error text is kept verbatim in the message.
        """
        expected: int | None
        try:
            expected = self.count_records()
        except LedgerError as exc:
            logger.warning("Could not read record count before reserving: %s", exc)
            expected = None
        logger.info(
            "Reserving public record for subject %s (expected id %s, hint only)",
            subject_id,
            expected,
        )

        try:
            receipt = self._client.send("reserveRecord", self.placeholder, str(subject_id), initiator)
        except SubmissionError as exc:
            raise ReservationError(
                context=LedgerOperationContext("public.reserveRecord", exc.details),
                cause=exc,
            ) from exc

        lookup = find_event(receipt, self._client.address, RECORD_RESERVED_EVENT)
        if not lookup.found or lookup.log is None or len(lookup.log.topics) < 2:
            raise ReservationError(
                context=LedgerOperationContext(
                    "public.reserveRecord",
                    f"receipt {receipt.tx_hash} has no RecordReserved event ({lookup.status})",
                )
            )
        record_id = lookup.log.indexed_int(1)
        if expected is not None and record_id != expected:
            logger.info(
                "Reserved record %d differs from expected %d (concurrent reservation)",
                record_id,
                expected,
            )
        logger.info("Reserved public record %d in %s", record_id, receipt.tx_hash)
        return Reservation(
            record_id=record_id,
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
            expected_record_id=expected,
        )

    def patch_record_hash(self, record_id: int, private_tx_id: str) -> PatchReceipt:
        """Write ``private_tx_id`` into a reserved record, exactly once.

        Raises:
            RecordAlreadyPatchedError: If the record no longer holds the
                                       placeholder, or a patch of it is
                                       already in flight.
            PatchError:                If the read or the transaction fails.
                                       A receipt wait that ran out keeps
                                       ``"timeout"`` in its message.
        """
        with self._in_flight_mutex:
            if record_id in self._in_flight:
                raise RecordAlreadyPatchedError(
                    context=LedgerOperationContext(
                        "public.patchRecordHash", f"patch of record {record_id} already in flight"
                    )
                )
            self._in_flight.add(record_id)

        try:
            return self._patch_once(record_id, private_tx_id)
        finally:
            with self._in_flight_mutex:
                self._in_flight.discard(record_id)

    def _patch_once(self, record_id: int, private_tx_id: str) -> PatchReceipt:
        try:
            record = self.get_record(record_id)
        except LedgerError as exc:
            raise PatchError(
                context=LedgerOperationContext("public.patchRecordHash", exc.details),
                cause=exc,
            ) from exc

        if not record.is_placeholder(self.placeholder):
            raise RecordAlreadyPatchedError(
                context=LedgerOperationContext(
                    "public.patchRecordHash",
                    f"record {record_id} already holds {record.private_tx_id}",
                )
            )

        logger.info("Patching public record %d with %s", record_id, private_tx_id)
        try:
            receipt = self._client.send("patchRecordHash", record_id, private_tx_id)
        except SubmissionError as exc:
            raise PatchError(
                context=LedgerOperationContext("public.patchRecordHash", exc.details),
                cause=exc,
            ) from exc

        return PatchReceipt(
            record_id=record_id,
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
        )
