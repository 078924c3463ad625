"""Test-wallet harness.

Load and integration testing needs the whole add/edit flow without a browser
wallet in the loop. The harness signs the private transaction with one of the
configured test wallets (``user_id`` ``"1"`` is the first key), waits for it
to mine, and then hands the transaction to the same
:meth:`~ledger_bridge.confirmation.engine.ConfirmationEngine.confirm_and_sync`
that production callers use.

The harness is disabled unless ``[harness] enabled = true``. It never touches
the production signing keys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ledger_bridge.catalog.models import ItemDraft
from ledger_bridge.chain.client import LedgerClient
from ledger_bridge.chain.errors import LedgerOperationContext, SubmissionError
from ledger_bridge.chain.events import find_event
from ledger_bridge.chain.signer import SignerRegistry
from ledger_bridge.confirmation.deadline import Deadline
from ledger_bridge.confirmation.engine import ConfirmationEngine
from ledger_bridge.confirmation.results import ConfirmationResult
from ledger_bridge.confirmation.states import OperationKind

logger = logging.getLogger(__name__)


class HarnessDisabledError(RuntimeError):
    """The test-wallet harness is switched off in configuration."""


class UnknownWalletError(LookupError):
    """No test wallet is configured for the requested user id."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"Invalid test user ID: {user_id}")
        self.user_id = user_id


@dataclass(frozen=True)
class HarnessRun:
    """Outcome of one harness flow: the private submission plus the sync result."""

    user_id: str
    wallet: str
    private_tx_id: str
    subject_id: str
    result: ConfirmationResult

    def to_payload(self) -> dict:
        payload = self.result.to_payload()
        payload["harness"] = {"user_id": self.user_id, "wallet": self.wallet}
        return payload


class WalletHarness:
    """Drive add/edit flows end to end with server-held test wallets."""

    def __init__(
        self,
        engine: ConfirmationEngine,
        private: LedgerClient,
        wallets: SignerRegistry,
        *,
        enabled: bool = False,
    ) -> None:
        self._engine = engine
        self._private = private
        self._wallets = wallets
        self.enabled = enabled

    def add_item(
        self, user_id: str, draft: ItemDraft, *, deadline: Deadline | None = None
    ) -> HarnessRun:
        """Submit ``addItem`` from a test wallet, then confirm and sync it.

        The subject id is the item id carried by the emitted add event.

        Raises:
            HarnessDisabledError: If the harness is off.
            UnknownWalletError:   For an unknown ``user_id``.
            SubmissionError:      If the private transaction fails or does not
                                  emit the add event.
        """
        self._require_enabled()
        signer = self._wallet(user_id)
        prepared = self._engine.prepare(OperationKind.ADD, draft, initiator=signer.address)
        receipt = self._private.send(prepared.method, *draft.as_args(), signer=signer)

        signature = self._engine.settings.add_event_signature
        lookup = find_event(receipt, self._private.address, signature)
        if not lookup.found or lookup.log is None:
            raise SubmissionError(
                context=LedgerOperationContext(
                    "private.harness.addItem",
                    lookup.detail or f"{signature} not emitted by {receipt.tx_hash}",
                )
            )
        subject_id = str(lookup.log.indexed_int(1))
        logger.info("Harness user %s added item %s in %s", user_id, subject_id, receipt.tx_hash)

        result = self._engine.confirm_and_sync(
            receipt.tx_hash,
            subject_id,
            signer.address,
            kind=OperationKind.ADD,
            deadline=deadline,
        )
        return HarnessRun(user_id, signer.address, receipt.tx_hash, subject_id, result)

    def edit_item(
        self,
        user_id: str,
        item_id: int,
        draft: ItemDraft,
        *,
        deadline: Deadline | None = None,
    ) -> HarnessRun:
        """Submit ``editItem`` from a test wallet, then confirm and sync it.

        Raises:
            HarnessDisabledError: If the harness is off.
            UnknownWalletError:   For an unknown ``user_id``.
            ItemNotFoundError:    If the item does not exist.
            NotItemOwnerError:    If the test wallet does not own the item.
            SubmissionError:      If the private transaction fails.
        """
        self._require_enabled()
        signer = self._wallet(user_id)
        prepared = self._engine.prepare(
            OperationKind.EDIT, draft, initiator=signer.address, item_id=item_id
        )
        receipt = self._private.send(prepared.method, item_id, *draft.as_args(), signer=signer)
        logger.info("Harness user %s edited item %d in %s", user_id, item_id, receipt.tx_hash)

        result = self._engine.confirm_and_sync(
            receipt.tx_hash,
            str(item_id),
            signer.address,
            kind=OperationKind.EDIT,
            deadline=deadline,
        )
        return HarnessRun(user_id, signer.address, receipt.tx_hash, str(item_id), result)

    def _wallet(self, user_id: str):
        try:
            return self._wallets.for_user(user_id)
        except KeyError:
            raise UnknownWalletError(user_id) from None

    def _require_enabled(self) -> None:
        if not self.enabled:
            raise HarnessDisabledError("The test-wallet harness is disabled")
