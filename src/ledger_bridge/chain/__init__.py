"""Chain package - ledger clients, signing and receipt decoding.

Public surface
--------------
- :class:`LedgerClient`  - JSON-RPC client bound to one contract.
- :class:`Signer`        - process-held signing key capability.
- :class:`SignerRegistry` - test-harness wallets keyed by user id.
- :func:`find_event`     - typed lookup of an expected event in a receipt.
- :class:`Receipt`, :class:`LogEntry` - plain receipt types.
- The :mod:`ledger_bridge.chain.errors` exception hierarchy.
"""

from ledger_bridge.chain.client import LedgerClient
from ledger_bridge.chain.errors import (
    LedgerError,
    LedgerOperationContext,
    PatchError,
    RecordAlreadyPatchedError,
    RecordNotFoundError,
    RecordTimeout,
    ReservationError,
    SubmissionError,
    TransientPollError,
    VerificationError,
)
from ledger_bridge.chain.events import EventLookup, event_topic, find_event
from ledger_bridge.chain.signer import Signer, SignerRegistry
from ledger_bridge.chain.types import LogEntry, Receipt

__all__ = [
    "EventLookup",
    "LedgerClient",
    "LedgerError",
    "LedgerOperationContext",
    "LogEntry",
    "PatchError",
    "Receipt",
    "RecordAlreadyPatchedError",
    "RecordNotFoundError",
    "RecordTimeout",
    "ReservationError",
    "Signer",
    "SignerRegistry",
    "SubmissionError",
    "TransientPollError",
    "VerificationError",
    "event_topic",
    "find_event",
]
