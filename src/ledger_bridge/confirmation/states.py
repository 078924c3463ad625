"""Operation state machine for the confirmation engine.

Transition order
----------------
::

    PREPARED ─► SUBMITTED ─► VERIFYING ─► VERIFIED ─► RECORDING ─► RECORDED ─► PATCHING ─► SYNCED
                    │            │                        │                       │
                    ▼            ├─► VERIFICATION_FAILED  ├─► RECORD_FAILED       ├─► PATCH_FAILED
              RECORD_FAILED      └─► VERIFICATION_PENDING ├─► RECORD_TIMEOUT      └─► RECORD_TIMEOUT

The public placeholder is reserved while the operation is still
``SUBMITTED`` (reservation always happens before verification). A failed
reservation moves straight to ``RECORD_FAILED`` and fails the whole
operation. ``RECORDING`` after ``VERIFIED`` confirms the reserved record is
readable and still holds the placeholder before it is patched.

``VERIFICATION_PENDING`` is the inconclusive outcome: polling ran out without
a decisive receipt. The private transaction may still mine, so it is not
reported as a failure.

An :class:`Operation` only ever moves forward along this table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class OperationStatus(str, Enum):
    PREPARED = "PREPARED"
    SUBMITTED = "SUBMITTED"
    VERIFYING = "VERIFYING"
    VERIFIED = "VERIFIED"
    RECORDING = "RECORDING"
    RECORDED = "RECORDED"
    PATCHING = "PATCHING"
    SYNCED = "SYNCED"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    VERIFICATION_PENDING = "VERIFICATION_PENDING"
    RECORD_FAILED = "RECORD_FAILED"
    RECORD_TIMEOUT = "RECORD_TIMEOUT"
    PATCH_FAILED = "PATCH_FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: frozenset[OperationStatus] = frozenset(
    {
        OperationStatus.SYNCED,
        OperationStatus.VERIFICATION_FAILED,
        OperationStatus.VERIFICATION_PENDING,
        OperationStatus.RECORD_FAILED,
        OperationStatus.RECORD_TIMEOUT,
        OperationStatus.PATCH_FAILED,
    }
)

TRANSITIONS: dict[OperationStatus, frozenset[OperationStatus]] = {
    OperationStatus.PREPARED: frozenset({OperationStatus.SUBMITTED}),
    OperationStatus.SUBMITTED: frozenset(
        {OperationStatus.VERIFYING, OperationStatus.RECORD_FAILED}
    ),
    OperationStatus.VERIFYING: frozenset(
        {
            OperationStatus.VERIFIED,
            OperationStatus.VERIFICATION_FAILED,
            OperationStatus.VERIFICATION_PENDING,
        }
    ),
    OperationStatus.VERIFIED: frozenset({OperationStatus.RECORDING}),
    OperationStatus.RECORDING: frozenset(
        {
            OperationStatus.RECORDED,
            OperationStatus.RECORD_FAILED,
            OperationStatus.RECORD_TIMEOUT,
        }
    ),
    OperationStatus.RECORDED: frozenset({OperationStatus.PATCHING}),
    OperationStatus.PATCHING: frozenset(
        {
            OperationStatus.SYNCED,
            OperationStatus.PATCH_FAILED,
            OperationStatus.RECORD_TIMEOUT,
        }
    ),
}


class OperationKind(str, Enum):
    """Domain operation mirrored across both ledgers."""

    ADD = "add"
    EDIT = "edit"

    @property
    def method(self) -> str:
        """Private contract method that performs the operation."""
        return "addItem" if self is OperationKind.ADD else "editItem"


class InvalidTransitionError(RuntimeError):
    """An operation was asked to move backwards or skip a state."""


@dataclass
class Operation:
    """One logical unit of work tracked through a ``confirm_and_sync`` call.

    ``private_tx_id`` is fixed at construction and never reassigned. The
    engine holds an ``Operation`` only for the duration of one call.
    """

    kind: OperationKind
    private_tx_id: str
    subject_id: str
    initiator: str
    status: OperationStatus = OperationStatus.PREPARED
    history: list[OperationStatus] = field(default_factory=list)

    def advance(self, target: OperationStatus) -> None:
        """Move to ``target``.

        Raises:
            InvalidTransitionError: If ``target`` is not reachable from the
                                    current status in one step.
        """
        allowed = TRANSITIONS.get(self.status, frozenset())
        if target not in allowed:
            raise InvalidTransitionError(
                f"{self.private_tx_id}: cannot move from {self.status.value} to {target.value}"
            )
        self.history.append(self.status)
        logger.debug("%s: %s -> %s", self.private_tx_id, self.status.value, target.value)
        self.status = target

    @property
    def finished(self) -> bool:
        return self.status.is_terminal
