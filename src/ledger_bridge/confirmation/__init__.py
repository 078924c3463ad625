"""Confirmation package - mirror private-ledger operations onto the public ledger.

Public surface
--------------
- :class:`ConfirmationEngine` - ``prepare``, ``confirm_and_sync``, ``resync``,
  plus ``prepare_rating``, ``prepare_like`` and ``prepare_comment``.
- :class:`WalletHarness` - server-signed test flows (disabled by default).
- Result types :class:`OkResult`, :class:`WarningResult`, :class:`ErrResult`
  and :func:`http_status`.
- :class:`Deadline` - request-scoped time budget and cancel flag.
- :class:`OperationStatus`, :class:`OperationKind`, :class:`Operation`.
"""

from ledger_bridge.confirmation.deadline import Deadline
from ledger_bridge.confirmation.engine import (
    ConfirmationEngine,
    EngineSettings,
    PreparedCall,
    PreparedInteraction,
    is_timeout_error,
)
from ledger_bridge.confirmation.harness import (
    HarnessDisabledError,
    HarnessRun,
    UnknownWalletError,
    WalletHarness,
)
from ledger_bridge.confirmation.results import (
    ConfirmationResult,
    ErrResult,
    OkResult,
    VerifiedTransaction,
    WarningResult,
    http_status,
)
from ledger_bridge.confirmation.states import (
    InvalidTransitionError,
    Operation,
    OperationKind,
    OperationStatus,
)

__all__ = [
    "ConfirmationEngine",
    "ConfirmationResult",
    "Deadline",
    "EngineSettings",
    "ErrResult",
    "HarnessDisabledError",
    "HarnessRun",
    "InvalidTransitionError",
    "OkResult",
    "Operation",
    "OperationKind",
    "OperationStatus",
    "PreparedCall",
    "PreparedInteraction",
    "UnknownWalletError",
    "VerifiedTransaction",
    "WalletHarness",
    "WarningResult",
    "http_status",
    "is_timeout_error",
]
