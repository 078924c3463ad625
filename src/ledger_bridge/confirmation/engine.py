"""Dual-ledger confirmation engine.

The engine has two entry points:

- :meth:`ConfirmationEngine.prepare` ABI-encodes an ``addItem`` or
  ``editItem`` call for the caller's wallet to sign and submit. Nothing is
  sent from here.
- :meth:`ConfirmationEngine.confirm_and_sync` takes the submitted private
  transaction id back and mirrors it onto the public ledger.

Ratings, likes and comments are prepared the same way
(:meth:`~ConfirmationEngine.prepare_rating`,
:meth:`~ConfirmationEngine.prepare_like`,
:meth:`~ConfirmationEngine.prepare_comment`) but have no public record.

confirm_and_sync sequence
-------------------------
1. **Reserve.** A placeholder record is reserved on the public ledger for the
   subject. This happens *before* private verification for both Add and Edit.
   If it fails the operation ends ``RECORD_FAILED`` and the call fails: no
   public trace exists and the caller can simply retry.
2. **Verify.** The private receipt is polled up to ``max_retries`` times,
   ``retry_delay_seconds`` apart:

   - not mined yet, or a transport error: retry.
   - reverted: ``VERIFICATION_FAILED`` at once.
   - sender differs from the initiator (case-insensitive):
     ``VERIFICATION_FAILED`` with ``{expected, actual}``, whatever the logs say.
   - expected event missing: ``VERIFICATION_FAILED``.
   - otherwise ``VERIFIED``.

   Running out of attempts (or of request time) without a decisive receipt
   is *inconclusive*: ``VERIFICATION_PENDING`` is reported as success with a
   warning because the transaction may still mine.
3. **Record.** The reserved record is read back and must still hold the
   placeholder for this subject.
4. **Patch.** ``patchRecordHash`` runs on the engine's worker pool and races
   a ``patch_timeout_seconds`` timer (clamped to the request deadline).
   Patch first: ``SYNCED``. Timer first: ``RECORD_TIMEOUT``. Any other patch
   error: ``PATCH_FAILED``. Both failures are warnings, not errors.

Abandoned patches
-----------------
When the timer wins, the patch keeps running in its worker thread and is
never cancelled. If it lands later the record ends up patched even though
the caller was told it timed out; a later :meth:`resync` then reports
``SYNCED`` without sending anything. If it never lands, the record keeps the
placeholder and :meth:`resync` can finish the job.

Deadlines
---------
Each call runs under a :class:`~ledger_bridge.confirmation.deadline.Deadline`.
Without one it gets ``request_timeout_seconds``; a caller may ask for less
through :meth:`ConfirmationEngine.deadline_for`, never for more. Closing the
engine cancels every running deadline. A dropped HTTP connection does not:
the handler thread keeps going until its deadline or the engine stops it.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Any

from ledger_bridge.catalog.errors import ItemNotFoundError, NotItemOwnerError
from ledger_bridge.catalog.models import ItemDraft
from ledger_bridge.catalog.reader import CatalogReader
from ledger_bridge.chain.client import LedgerClient
from ledger_bridge.chain.errors import (
    LedgerError,
    LedgerOperationContext,
    RecordTimeout,
    TransientPollError,
    VerificationError,
)
from ledger_bridge.chain.events import find_event
from ledger_bridge.chain.types import Receipt
from ledger_bridge.confirmation.deadline import Deadline
from ledger_bridge.confirmation.results import (
    INCONCLUSIVE_WARNING,
    PATCH_FAILED_WARNING,
    RECORD_UNREADABLE_WARNING,
    TIMEOUT_WARNING,
    ConfirmationResult,
    ErrResult,
    OkResult,
    VerifiedTransaction,
    WarningResult,
)
from ledger_bridge.confirmation.states import Operation, OperationKind, OperationStatus
from ledger_bridge.records.models import Reservation
from ledger_bridge.records.store import CrossReferenceStore

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for polling and the patch race."""

    max_retries: int = 10
    retry_delay_seconds: float = 2.0
    patch_timeout_seconds: float = 30.0
    request_timeout_seconds: float = 120.0
    patch_workers: int = 4
    add_event_signature: str = "ItemAdded(uint256,string,address)"
    edit_event_signature: str = "ItemEdited(uint256,string,address)"

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.retry_delay_seconds < 0:
            raise ValueError(
                f"retry_delay_seconds must not be negative, got {self.retry_delay_seconds:g}"
            )
        if self.patch_timeout_seconds <= 0:
            raise ValueError(
                f"patch_timeout_seconds must be positive, got {self.patch_timeout_seconds:g}"
            )
        if self.patch_workers < 1:
            raise ValueError(f"patch_workers must be at least 1, got {self.patch_workers}")

    @classmethod
    def from_config(cls, cfg: Any) -> EngineSettings:
        """Build from a :class:`~ledger_bridge.config.BridgeConfig`."""
        return cls(
            max_retries=cfg.confirmation.max_retries,
            retry_delay_seconds=cfg.confirmation.retry_delay_seconds,
            patch_timeout_seconds=cfg.confirmation.patch_timeout_seconds,
            request_timeout_seconds=cfg.confirmation.request_timeout_seconds,
            patch_workers=cfg.confirmation.patch_workers,
            add_event_signature=cfg.private_ledger.add_event_signature,
            edit_event_signature=cfg.private_ledger.edit_event_signature,
        )

    def signature_for(self, kind: OperationKind) -> str:
        return self.add_event_signature if kind is OperationKind.ADD else self.edit_event_signature


@dataclass(frozen=True)
class PreparedCall:
    """An unsigned, ABI-encoded private contract call."""

    kind: OperationKind
    method: str
    transaction_data: str
    contract_address: str
    initiator: str
    draft: ItemDraft
    subject_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": f"Transaction data for {self.method} prepared",
            "status": OperationStatus.PREPARED.value,
            "transaction_data": self.transaction_data,
            "contract_address": self.contract_address,
            "subject_id": self.subject_id,
            "item": self.draft.to_payload(),
        }


@dataclass(frozen=True)
class PreparedInteraction:
    """An unsigned rate, like or comment call on an existing item.

    These calls are not mirrored to the public ledger.
    """

    method: str
    transaction_data: str
    contract_address: str
    initiator: str
    item_id: int
    rating: int | None = None
    comment: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": True,
            "message": f"Transaction data for {self.method} prepared",
            "status": OperationStatus.PREPARED.value,
            "transaction_data": self.transaction_data,
            "contract_address": self.contract_address,
            "item_id": str(self.item_id),
        }
        if self.rating is not None:
            payload["rating"] = self.rating
        if self.comment is not None:
            payload["comment"] = self.comment
        return payload


@dataclass
class _Running:
    """Deadlines of calls in progress, cancelled together on close."""

    deadlines: set[Deadline] = field(default_factory=set)
    mutex: threading.Lock = field(default_factory=threading.Lock)


def is_timeout_error(exc: BaseException) -> bool:
    """``True`` for a lost race or any error whose text mentions a timeout."""
    return isinstance(exc, RecordTimeout) or "timeout" in str(exc).lower()


class ConfirmationEngine:
    """Orchestrates private verification and public mirroring.

    One engine serves all requests. It holds no per-operation state between
    calls; the caller round-trips ``private_tx_id``, ``subject_id`` and
    ``initiator`` from :meth:`prepare` to :meth:`confirm_and_sync`.
    """

    def __init__(
        self,
        private: LedgerClient,
        store: CrossReferenceStore,
        catalog: CatalogReader,
        settings: EngineSettings | None = None,
        *,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._private = private
        self._store = store
        self._catalog = catalog
        self.settings = settings or EngineSettings()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.patch_workers, thread_name_prefix="public-patch"
        )
        self._running = _Running()
        self._closed = False

    # ── prepare ───────────────────────────────────────────────────────────────

    def prepare(
        self,
        kind: OperationKind,
        draft: ItemDraft,
        *,
        initiator: str,
        item_id: int | None = None,
    ) -> PreparedCall:
        """Encode the private call for ``draft`` without submitting it.

        For an edit the item must exist and be owned by ``initiator``.

        Raises:
            ValueError:        On a missing initiator or item id, or arguments
                               that do not fit the ABI.
            ItemNotFoundError: If the item to edit cannot be read.
            NotItemOwnerError: If ``initiator`` does not own the item.
        """
        if not initiator:
            raise ValueError("initiator is required")

        if kind is OperationKind.ADD:
            data = self._private.encode_call(kind.method, *draft.as_args())
            subject_id = None
        else:
            if item_id is None:
                raise ValueError("item_id is required for an edit")
            try:
                item = self._catalog.get_item(item_id)
            except LedgerError as exc:
                logger.warning("Could not read item %s for edit: %s", item_id, exc)
                raise ItemNotFoundError(item_id) from exc
            if not item.is_owned_by(initiator):
                raise NotItemOwnerError(item_id, initiator)
            data = self._private.encode_call(kind.method, item_id, *draft.as_args())
            subject_id = str(item_id)

        logger.info("Prepared %s for %s (%s)", kind.method, initiator, draft.name)
        return PreparedCall(
            kind=kind,
            method=kind.method,
            transaction_data=data,
            contract_address=self._private.address,
            initiator=initiator,
            draft=draft,
            subject_id=subject_id,
        )

    def prepare_rating(self, item_id: int, rating: int, *, initiator: str) -> PreparedInteraction:
        """Encode ``rateItem``. Ratings run from 1 to 5.

        Raises:
            ValueError:        On a missing initiator or an out-of-range rating.
            ItemNotFoundError: If the item does not exist.
        """
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"rating must be between {MIN_RATING} and {MAX_RATING}")
        self._existing_item(item_id, initiator)
        try:
            previous = self._catalog.user_rating(item_id, initiator)
        except LedgerError as exc:
            logger.warning("Could not read previous rating of item %s: %s", item_id, exc)
        else:
            if previous:
                logger.info("%s re-rates item %s (was %d)", initiator, item_id, previous)
        return self._interaction("rateItem", item_id, initiator, item_id, rating, rating=rating)

    def prepare_like(self, item_id: int, *, initiator: str) -> PreparedInteraction:
        """Encode ``likeItem``."""
        self._existing_item(item_id, initiator)
        return self._interaction("likeItem", item_id, initiator, item_id)

    def prepare_comment(self, item_id: int, comment: str, *, initiator: str) -> PreparedInteraction:
        """Encode ``commentItem``.

        Raises:
            ValueError: On a blank comment.
        """
        if not comment or not comment.strip():
            raise ValueError("comment must not be empty")
        self._existing_item(item_id, initiator)
        return self._interaction(
            "commentItem", item_id, initiator, item_id, comment, comment=comment
        )

    def _existing_item(self, item_id: int, initiator: str) -> None:
        if not initiator:
            raise ValueError("initiator is required")
        try:
            self._catalog.get_item(item_id)
        except LedgerError as exc:
            logger.warning("Could not read item %s: %s", item_id, exc)
            raise ItemNotFoundError(item_id) from exc

    def _interaction(
        self, method: str, item_id: int, initiator: str, *args: Any, **extra: Any
    ) -> PreparedInteraction:
        data = self._private.encode_call(method, *args)
        logger.info("Prepared %s on item %s for %s", method, item_id, initiator)
        return PreparedInteraction(
            method=method,
            transaction_data=data,
            contract_address=self._private.address,
            initiator=initiator,
            item_id=item_id,
            **extra,
        )

    # ── confirm_and_sync ──────────────────────────────────────────────────────

    def deadline_for(self, timeout_seconds: float | None) -> Deadline:
        """Deadline for one call, capped at ``request_timeout_seconds``."""
        limit = self.settings.request_timeout_seconds
        if timeout_seconds is not None and (limit <= 0 or timeout_seconds < limit):
            limit = timeout_seconds
        return Deadline.after(limit)

    def confirm_and_sync(
        self,
        private_tx_id: str,
        subject_id: str,
        initiator: str,
        expected_event_signature: str | None = None,
        *,
        kind: OperationKind = OperationKind.ADD,
        deadline: Deadline | None = None,
    ) -> ConfirmationResult:
        """Reserve, verify, and patch. See the module docstring.

        Raises:
            ValueError: If any of the three ids is empty.
        """
        if not private_tx_id or subject_id in (None, "") or not initiator:
            raise ValueError("private_tx_id, subject_id and initiator are required")

        op = Operation(kind, private_tx_id, str(subject_id), initiator)
        op.advance(OperationStatus.SUBMITTED)
        signature = expected_event_signature or self.settings.signature_for(kind)

        with self._track(deadline) as active:
            try:
                reservation = self._store.reserve_record(op.subject_id, initiator)
            except LedgerError as exc:
                logger.error("Reservation for %s failed: %s", private_tx_id, exc)
                op.advance(OperationStatus.RECORD_FAILED)
                return self._finish(
                    op,
                    ErrResult(
                        status=op.status,
                        message=f"Failed to create public record: {exc.details}",
                        private_tx_id=private_tx_id,
                        subject_id=op.subject_id,
                        kind="reservation",
                        detail=exc.details,
                    ),
                )
            return self._verify_and_patch(op, reservation, signature, active)

    def resync(
        self,
        record_id: int,
        private_tx_id: str,
        initiator: str,
        expected_event_signature: str | None = None,
        *,
        kind: OperationKind = OperationKind.ADD,
        deadline: Deadline | None = None,
    ) -> ConfirmationResult:
        """Verify and patch an existing reservation.

        For clients holding a warning result. A record that already holds
        ``private_tx_id`` is reported ``SYNCED`` without sending anything.

        Raises:
            ValueError:          On empty ids or a negative record id.
            RecordNotFoundError: If ``record_id`` does not exist.
        """
        if not private_tx_id or not initiator:
            raise ValueError("private_tx_id and initiator are required")
        record = self._store.get_record(record_id)
        op = Operation(kind, private_tx_id, record.subject_id, initiator)
        op.advance(OperationStatus.SUBMITTED)
        signature = expected_event_signature or self.settings.signature_for(kind)
        logger.info("Resyncing record %d with %s", record_id, private_tx_id)

        with self._track(deadline) as active:
            return self._verify_and_patch(op, Reservation(record_id=record_id), signature, active)

    def close(self) -> None:
        """Cancel running deadlines and stop accepting patch work.

        Patches already submitted are left to finish.
        """
        if self._closed:
            return
        self._closed = True
        with self._running.mutex:
            for deadline in self._running.deadlines:
                deadline.cancel()
        self._executor.shutdown(wait=False)

    # ── Steps ─────────────────────────────────────────────────────────────────

    def _verify_and_patch(
        self,
        op: Operation,
        reservation: Reservation,
        signature: str,
        deadline: Deadline,
    ) -> ConfirmationResult:
        op.advance(OperationStatus.VERIFYING)
        try:
            verified = self._verify(op, signature, deadline)
        except VerificationError as exc:
            op.advance(OperationStatus.VERIFICATION_FAILED)
            return self._finish(
                op,
                ErrResult(
                    status=op.status,
                    message=f"Private transaction verification failed: {exc.details}",
                    private_tx_id=op.private_tx_id,
                    subject_id=op.subject_id,
                    reservation=reservation,
                    kind="sender_mismatch" if exc.mismatch else "verification",
                    detail=exc.mismatch or exc.details,
                ),
            )

        if verified is None:
            op.advance(OperationStatus.VERIFICATION_PENDING)
            return self._finish(
                op,
                WarningResult(
                    status=op.status,
                    message="Public record reserved, but the private transaction is not verified yet",
                    private_tx_id=op.private_tx_id,
                    subject_id=op.subject_id,
                    reservation=reservation,
                    warning=INCONCLUSIVE_WARNING,
                ),
            )

        op.advance(OperationStatus.VERIFIED)
        return self._record_and_patch(op, reservation, verified, deadline)

    def _verify(
        self, op: Operation, signature: str, deadline: Deadline
    ) -> VerifiedTransaction | None:
        """Poll the private receipt. ``None`` means inconclusive.

        Raises:
            VerificationError: On a definite failure.
        """
        max_retries = self.settings.max_retries
        attempt = 0
        while attempt < max_retries:
            if deadline.expired:
                logger.warning("Request deadline reached while verifying %s", op.private_tx_id)
                break
            attempt += 1
            logger.info("Verifying %s (attempt %d/%d)", op.private_tx_id, attempt, max_retries)
            try:
                receipt = self._private.get_receipt(op.private_tx_id)
            except TransientPollError as exc:
                logger.warning("Receipt poll %d for %s failed: %s", attempt, op.private_tx_id, exc)
            else:
                if receipt is not None:
                    return self._judge(op, receipt, signature)
                logger.info("%s not mined yet", op.private_tx_id)
            if attempt < max_retries and not deadline.sleep(self.settings.retry_delay_seconds):
                logger.warning("Verification of %s cancelled", op.private_tx_id)
                break
        logger.warning("Verification of %s inconclusive after %d attempt(s)", op.private_tx_id, attempt)
        return None

    def _judge(self, op: Operation, receipt: Receipt, signature: str) -> VerifiedTransaction:
        operation = f"private.verify.{op.kind.method}"
        if not receipt.status:
            raise VerificationError(
                context=LedgerOperationContext(
                    operation, f"transaction {receipt.tx_hash} reverted on the private ledger"
                )
            )
        if receipt.from_address.lower() != op.initiator.lower():
            raise VerificationError(
                context=LedgerOperationContext(operation, "sender does not match initiator"),
                mismatch={"expected": op.initiator, "actual": receipt.from_address},
            )
        lookup = find_event(receipt, self._private.address, signature)
        if not lookup.found:
            raise VerificationError(
                context=LedgerOperationContext(operation, lookup.detail or lookup.status)
            )
        logger.info(
            "Verified %s in block %d (gas %d)",
            receipt.tx_hash,
            receipt.block_number,
            receipt.gas_used,
        )
        return VerifiedTransaction(
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
            sender=receipt.from_address,
        )

    def _record_and_patch(
        self,
        op: Operation,
        reservation: Reservation,
        verified: VerifiedTransaction,
        deadline: Deadline,
    ) -> ConfirmationResult:
        op.advance(OperationStatus.RECORDING)

        def warning(message: str, text: str, exc: BaseException | None, timeout: bool) -> WarningResult:
            return WarningResult(
                status=op.status,
                message=message,
                private_tx_id=op.private_tx_id,
                subject_id=op.subject_id,
                reservation=reservation,
                warning=text,
                is_timeout=timeout,
                error=str(exc) if exc else None,
                verification=verified,
            )

        try:
            record = self._store.get_record(reservation.record_id)
        except LedgerError as exc:
            timeout = is_timeout_error(exc)
            op.advance(
                OperationStatus.RECORD_TIMEOUT if timeout else OperationStatus.RECORD_FAILED
            )
            return self._finish(
                op,
                warning(
                    "Private transaction verified, but the public record could not be read",
                    TIMEOUT_WARNING if timeout else RECORD_UNREADABLE_WARNING,
                    exc,
                    timeout,
                ),
            )

        if record.private_tx_id == op.private_tx_id:
            op.advance(OperationStatus.RECORDED)
            op.advance(OperationStatus.PATCHING)
            op.advance(OperationStatus.SYNCED)
            return self._finish(op, self._ok(op, reservation, verified, None))

        if record.subject_id != op.subject_id or not record.is_placeholder(self._store.placeholder):
            op.advance(OperationStatus.RECORD_FAILED)
            detail = (
                f"record {record.record_id} holds {record.private_tx_id!r} "
                f"for subject {record.subject_id}"
            )
            return self._finish(
                op,
                warning(
                    "Private transaction verified, but the public record cannot be patched",
                    PATCH_FAILED_WARNING,
                    RuntimeError(detail),
                    False,
                ),
            )

        op.advance(OperationStatus.RECORDED)
        op.advance(OperationStatus.PATCHING)
        try:
            patch = self._race_patch(op, reservation.record_id, deadline)
        except Exception as exc:  # noqa: BLE001
            timeout = is_timeout_error(exc)
            op.advance(OperationStatus.RECORD_TIMEOUT if timeout else OperationStatus.PATCH_FAILED)
            logger.warning("Patch of record %d %s: %s", reservation.record_id, op.status.value, exc)
            return self._finish(
                op,
                warning(
                    "Private transaction verified, but the public record was not updated",
                    TIMEOUT_WARNING if timeout else PATCH_FAILED_WARNING,
                    exc,
                    timeout,
                ),
            )

        op.advance(OperationStatus.SYNCED)
        return self._finish(op, self._ok(op, reservation, verified, patch))

    def _race_patch(self, op: Operation, record_id: int, deadline: Deadline):
        """Run the patch against the clock. The loser is never cancelled.

        Nothing is submitted once the request deadline has passed.

        Raises:
            RecordTimeout: If the timer settles first, or the deadline is gone.
            Exception:     Whatever the patch raised, if it settles first.
        """
        if deadline.expired:
            raise RecordTimeout(
                context=LedgerOperationContext(
                    "public.patchRecordHash",
                    f"Request timeout before patching record {record_id}",
                )
            )
        timeout = deadline.clamp(self.settings.patch_timeout_seconds)
        future = self._executor.submit(self._store.patch_record_hash, record_id, op.private_tx_id)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            future.add_done_callback(_log_late_patch(record_id, op.private_tx_id))
            raise RecordTimeout(
                context=LedgerOperationContext(
                    "public.patchRecordHash",
                    f"Public transaction timeout after {timeout:g} seconds",
                )
            ) from None

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _ok(
        self,
        op: Operation,
        reservation: Reservation,
        verified: VerifiedTransaction,
        patch,
    ) -> OkResult:
        verb = "added" if op.kind is OperationKind.ADD else "edited"
        return OkResult(
            status=op.status,
            message=f"Item {verb} on the private ledger and recorded on the public ledger",
            private_tx_id=op.private_tx_id,
            subject_id=op.subject_id,
            reservation=reservation,
            verification=verified,
            patch=patch,
        )

    def _finish(self, op: Operation, result: ConfirmationResult) -> ConfirmationResult:
        logger.info(
            "%s %s for subject %s finished %s (record %s)",
            op.kind.value,
            op.private_tx_id,
            op.subject_id,
            op.status.value,
            result.record_id,
        )
        return result

    def _track(self, deadline: Deadline | None) -> _Tracked:
        if self._closed:
            raise RuntimeError("Confirmation engine is closed")
        active = deadline or Deadline.after(self.settings.request_timeout_seconds)
        return _Tracked(self._running, active)


class _Tracked:
    """Register a deadline for the duration of a ``with`` block."""

    def __init__(self, running: _Running, deadline: Deadline) -> None:
        self._running = running
        self._deadline = deadline

    def __enter__(self) -> Deadline:
        with self._running.mutex:
            self._running.deadlines.add(self._deadline)
        return self._deadline

    def __exit__(self, *exc_info: object) -> None:
        with self._running.mutex:
            self._running.deadlines.discard(self._deadline)


def _log_late_patch(record_id: int, private_tx_id: str):
    def _done(future: Future) -> None:
        exc = future.exception()
        if exc is None:
            logger.warning(
                "Patch of record %d with %s landed after its timeout was reported",
                record_id,
                private_tx_id,
            )
        else:
            logger.warning("Abandoned patch of record %d failed: %s", record_id, exc)

    return _done
