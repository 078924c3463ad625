"""Typed ledger exceptions.

This module defines the exception hierarchy used by the ledger clients, the
cross-reference store and the confirmation engine. Library exceptions from
``web3`` and ``requests`` are translated into these types at the client
boundary so nothing above it depends on transport details.

Design intent:
    - Domain outcomes like "receipt not mined yet" are represented by ``None``
      where the contract already uses that value.
    - Transport and on-chain failures raise typed exceptions so the engine can
      classify them (retry, downgrade to warning, or fail the operation).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class LedgerOperationContext:
    """Structured operation metadata carried by ledger exceptions.

    Attributes:
        operation: Stable operation identifier (for example
            ``"public.send.patchRecordHash"``).
        details: Optional human-readable context for logs and responses.
    """

    operation: str
    details: str | None = None


class LedgerError(RuntimeError):
    """Base exception for ledger-layer failures.

    Args:
        context: Structured operation metadata.
        cause: Optional underlying exception.
    """

    def __init__(
        self,
        *,
        context: LedgerOperationContext,
        cause: Exception | None = None,
    ) -> None:
        message = context.operation
        if context.details:
            message = f"{message}: {context.details}"
        super().__init__(message)
        self.context = context
        self.cause = cause

    @property
    def details(self) -> str:
        """The human-readable part of the message, without the operation id."""
        return self.context.details or self.context.operation


class SubmissionError(LedgerError):
    """The RPC node rejected a call or transaction, or the transport failed."""


class TransientPollError(LedgerError):
    """A network blip while polling for a receipt. Retried by the engine."""


class VerificationError(LedgerError):
    """Definite on-chain failure or sender mismatch. Never retried.

    Attributes:
        mismatch: ``{"expected": ..., "actual": ...}`` when the verified sender
                  differs from the claimed initiator, else ``None``.
    """

    def __init__(
        self,
        *,
        context: LedgerOperationContext,
        cause: Exception | None = None,
        mismatch: dict[str, str] | None = None,
    ) -> None:
        super().__init__(context=context, cause=cause)
        self.mismatch = mismatch


class ReservationError(LedgerError):
    """The public placeholder record could not be reserved."""


class RecordNotFoundError(LedgerError):
    """A cross-reference record id does not exist on the public ledger."""


class PatchError(LedgerError):
    """Writing the real private transaction id into a record failed."""


class RecordAlreadyPatchedError(PatchError):
    """The record no longer holds the placeholder and must not be patched."""


class RecordTimeout(PatchError):
    """The bounded patch race was lost to the clock."""
