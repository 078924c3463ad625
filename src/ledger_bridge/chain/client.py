"""JSON-RPC ledger client.

``LedgerClient`` is a thin, synchronous wrapper around a ``web3`` HTTP
connection and one contract. It is the only place in the service that talks
to a ledger node. Two instances exist at runtime: one for the private ledger
and one for the public ledger.

Sync vs async
-------------
The client is synchronous. ``web3``'s ``HTTPProvider`` sits on ``requests``,
and FastAPI runs the sync confirmation handlers inside its thread-pool
executor, so a blocking RPC call here does not stall the event loop. The
provider's ``requests`` connection pool is safe for concurrent reads; writes
are serialised by the node.

Error translation
-----------------
``web3`` and ``requests`` exceptions never escape this module:

- :meth:`call_view`, :meth:`estimate_gas`, :meth:`submit_transaction`,
  :meth:`wait_for_receipt` and :meth:`send` raise
  :exc:`~ledger_bridge.chain.errors.SubmissionError`.
- :meth:`get_receipt` returns ``None`` for a not-yet-mined transaction and
  raises :exc:`~ledger_bridge.chain.errors.TransientPollError` for transport
  failures, which the confirmation engine retries.

Signing
-------
Transactions are signed locally by an injected
:class:`~ledger_bridge.chain.signer.Signer`. A per-call signer may be passed
for test-harness flows; otherwise the client's own signer is used.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound, Web3Exception

from ledger_bridge.chain.errors import (
    LedgerOperationContext,
    SubmissionError,
    TransientPollError,
)
from ledger_bridge.chain.signer import Signer
from ledger_bridge.chain.types import Receipt, to_hex

logger = logging.getLogger(__name__)

# Exceptions raised by web3 / requests / the OS socket layer for a failed
# round trip. Older node error payloads still surface as ValueError.
_TRANSPORT_ERRORS: tuple[type[Exception], ...] = (
    Web3Exception,
    RequestException,
    ValueError,
    OSError,
)

_DEFAULT_GAS_MULTIPLIER = 1.2


class LedgerClient:
    """Synchronous client for one ledger and one contract on it.

    Attributes:
        name:     Short label used in logs and error operation ids
                  (``"private"`` or ``"public"``).
        address:  Checksum address of the bound contract.
    """

    def __init__(
        self,
        *,
        name: str,
        rpc_url: str,
        contract_address: str,
        abi: list[dict],
        signer: Signer | None = None,
        request_timeout_seconds: float = 10.0,
        receipt_timeout_seconds: float = 120.0,
        gas_multiplier: float = _DEFAULT_GAS_MULTIPLIER,
        w3: Web3 | None = None,
    ) -> None:
        """Initialise the client.

        No network call is made here.

        Args:
            name:                    Label for logs (``"private"``/``"public"``).
            rpc_url:                 JSON-RPC endpoint URL.
            contract_address:        Address of the contract to bind.
            abi:                     Contract ABI list.
            signer:                  Default transaction signer, if any.
            request_timeout_seconds: Per-request HTTP timeout.
            receipt_timeout_seconds: Default wait for a sent transaction to mine.
            gas_multiplier:          Headroom applied to gas estimates.
            w3:                      Pre-built ``Web3`` instance (tests).

        Raises:
            ValueError: If ``contract_address`` is empty or invalid.
        """
        if not contract_address:
            raise ValueError(f"{name} ledger: contract address is not configured.")
        self.name = name
        self._w3 = w3 or Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout_seconds})
        )
        self.address = Web3.to_checksum_address(contract_address)
        self._contract = self._w3.eth.contract(address=self.address, abi=abi)
        self._signer = signer
        self._receipt_timeout = receipt_timeout_seconds
        self._gas_multiplier = gas_multiplier
        self._chain_id: int | None = None

    # ── Identity ──────────────────────────────────────────────────────────────

    @property
    def signer(self) -> Signer | None:
        return self._signer

    def chain_id(self) -> int:
        """Return the node's chain id (cached after the first call)."""
        if self._chain_id is None:
            self._chain_id = int(self._rpc("chain_id", lambda: self._w3.eth.chain_id))
        return self._chain_id

    def block_number(self) -> int:
        return int(self._rpc("block_number", lambda: self._w3.eth.block_number))

    # ── Reads ─────────────────────────────────────────────────────────────────

    def call_view(self, method: str, *args: Any) -> Any:
        """Execute a read-only contract call and return the decoded value."""
        function = self._function(method, *args)
        return self._rpc(f"call.{method}", function.call)

    def encode_call(self, method: str, *args: Any) -> str:
        """ABI-encode a contract call without submitting it.

        Raises:
            ValueError: If the method is unknown or the arguments do not
                        match its ABI.
        """
        try:
            return to_hex(self._contract.encode_abi(method, args=list(args)))
        except (Web3Exception, TypeError, ValueError) as exc:
            raise ValueError(f"Cannot encode {method}: {exc}") from exc

    def estimate_gas(self, method: str, *args: Any, sender: str | None = None) -> int:
        function = self._function(method, *args)
        params = {"from": sender} if sender else {}
        return int(self._rpc(f"estimate_gas.{method}", lambda: function.estimate_gas(params)))

    def current_nonce(self, address: str) -> int:
        return int(
            self._rpc(
                "nonce",
                lambda: self._w3.eth.get_transaction_count(address, "pending"),
            )
        )

    def current_gas_price(self) -> int:
        return int(self._rpc("gas_price", lambda: self._w3.eth.gas_price))

    # ── Receipts ──────────────────────────────────────────────────────────────

    def get_receipt(self, tx_id: str) -> Receipt | None:
        """Fetch a receipt without blocking.

        Returns:
            The receipt, or ``None`` if the transaction is not mined yet.

        Raises:
            TransientPollError: On any transport failure.
        """
        try:
            raw = self._w3.eth.get_transaction_receipt(tx_id)
        except TransactionNotFound:
            return None
        except _TRANSPORT_ERRORS as exc:
            raise TransientPollError(
                context=LedgerOperationContext(f"{self.name}.get_receipt", str(exc)),
                cause=exc,
            ) from exc
        if raw is None:
            return None
        try:
            return Receipt.from_web3(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise TransientPollError(
                context=LedgerOperationContext(
                    f"{self.name}.get_receipt", f"incomplete receipt for {tx_id}: {exc}"
                ),
                cause=exc,
            ) from exc

    def wait_for_receipt(self, tx_id: str, timeout: float | None = None) -> Receipt:
        """Block until ``tx_id`` is mined or ``timeout`` seconds elapse.

        Raises:
            SubmissionError: On timeout (the message contains ``"timeout"``)
                             or transport failure.
        """
        limit = self._receipt_timeout if timeout is None else timeout
        try:
            raw = self._w3.eth.wait_for_transaction_receipt(tx_id, timeout=limit)
        except TimeExhausted as exc:
            raise SubmissionError(
                context=LedgerOperationContext(
                    f"{self.name}.wait_for_receipt",
                    f"timeout after {limit:g} seconds waiting for {tx_id}",
                ),
                cause=exc,
            ) from exc
        except _TRANSPORT_ERRORS as exc:
            raise SubmissionError(
                context=LedgerOperationContext(f"{self.name}.wait_for_receipt", str(exc)),
                cause=exc,
            ) from exc
        try:
            return Receipt.from_web3(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise SubmissionError(
                context=LedgerOperationContext(
                    f"{self.name}.wait_for_receipt", f"incomplete receipt for {tx_id}: {exc}"
                ),
                cause=exc,
            ) from exc

    # ── Writes ────────────────────────────────────────────────────────────────

    def build_transaction(
        self, method: str, *args: Any, signer: Signer | None = None
    ) -> dict[str, Any]:
        """Assemble an unsigned legacy transaction for a contract call.

        Gas is the node's estimate times the configured multiplier; gas price
        and nonce are read from the node at call time.
        """
        active = self._require_signer(signer)
        gas_estimate = self.estimate_gas(method, *args, sender=active.address)
        return {
            "from": active.address,
            "to": self.address,
            "data": self.encode_call(method, *args),
            "gas": int(gas_estimate * self._gas_multiplier),
            "gasPrice": self.current_gas_price(),
            "nonce": self.current_nonce(active.address),
            "chainId": self.chain_id(),
        }

    def submit_transaction(
        self, payload: Mapping[str, Any], signer: Signer | None = None
    ) -> str:
        """Sign ``payload`` and submit it. Returns the transaction hash.

        Raises:
            SubmissionError: If no signer is available or the node rejects
                             the transaction.
        """
        active = self._require_signer(signer)
        raw = active.sign_transaction(payload)
        tx_hash = self._rpc("send_raw_transaction", lambda: self._w3.eth.send_raw_transaction(raw))
        tx_id = to_hex(tx_hash)
        logger.info("%s ledger: submitted %s from %s", self.name, tx_id, active.address)
        return tx_id

    def send(
        self,
        method: str,
        *args: Any,
        signer: Signer | None = None,
        timeout: float | None = None,
    ) -> Receipt:
        """Build, sign, submit and wait for a stateful contract call.

        Returns:
            The mined receipt.

        Raises:
            SubmissionError: On rejection, timeout, or if the transaction
                             reverted.
        """
        payload = self.build_transaction(method, *args, signer=signer)
        tx_id = self.submit_transaction(payload, signer=signer)
        receipt = self.wait_for_receipt(tx_id, timeout=timeout)
        if not receipt.status:
            raise SubmissionError(
                context=LedgerOperationContext(
                    f"{self.name}.send.{method}", f"transaction {tx_id} reverted"
                )
            )
        logger.info(
            "%s ledger: %s mined in block %d (gas %d)",
            self.name,
            tx_id,
            receipt.block_number,
            receipt.gas_used,
        )
        return receipt

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _function(self, method: str, *args: Any) -> Any:
        function = getattr(self._contract.functions, method, None)
        if function is None:
            raise ValueError(f"{self.name} contract has no method {method!r}")
        return function(*args)

    def _require_signer(self, signer: Signer | None) -> Signer:
        active = signer or self._signer
        if active is None:
            raise SubmissionError(
                context=LedgerOperationContext(
                    f"{self.name}.sign", "no signing key configured for this ledger"
                )
            )
        return active

    def _rpc(self, operation: str, thunk: Any) -> Any:
        """Run ``thunk`` and translate transport failures to SubmissionError."""
        try:
            return thunk()
        except _TRANSPORT_ERRORS as exc:
            logger.warning("%s ledger: %s failed: %s", self.name, operation, exc)
            raise SubmissionError(
                context=LedgerOperationContext(f"{self.name}.{operation}", str(exc)),
                cause=exc,
            ) from exc
