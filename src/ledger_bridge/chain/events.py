"""Event decoder for private-ledger receipts.

Given a receipt and an expected event signature such as
``"ItemAdded(uint256,string,address)"``, :func:`find_event` decides whether
the transaction emitted that event from our contract.

Outcomes
--------
The lookup never raises for a well-formed call. It returns an
:class:`EventLookup` whose ``status`` is one of:

- ``"found"``            - a log from the contract carries the expected topic.
- ``"not_found"``        - the contract emitted logs, but none match. The
                           transaction succeeded and emitted a *different*
                           event.
- ``"no_contract_logs"`` - the receipt has no logs from the contract at all.
- ``"malformed"``        - the receipt carries no log list to inspect.

Matching is by ``topics[0] == keccak256(signature)`` on logs whose address
equals the contract address case-insensitively. Anonymous events cannot be
matched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal

from web3 import Web3

from ledger_bridge.chain.types import LogEntry, Receipt

logger = logging.getLogger(__name__)


@lru_cache(maxsize=64)
def event_topic(signature: str) -> str:
    """Return the ``0x``-prefixed keccak256 topic hash of an event signature."""
    normalised = signature.replace(" ", "")
    if not normalised or "(" not in normalised or not normalised.endswith(")"):
        raise ValueError(f"Not an event signature: {signature!r}")
    return "0x" + bytes(Web3.keccak(text=normalised)).hex()


@dataclass(frozen=True)
class EventLookup:
    """Result of searching a receipt for an expected event.

    Attributes:
        status:           Outcome, see module docstring.
        signature:        The signature that was searched for.
        log:              The matching log on ``"found"``, else ``None``.
        available_topics: ``topics[0]`` of every contract log, for diagnostics
                          on ``"not_found"``.
        detail:           Human-readable reason for any non-found outcome.
    """

    status: Literal["found", "not_found", "no_contract_logs", "malformed"]
    signature: str
    log: LogEntry | None = None
    available_topics: tuple[str, ...] = field(default_factory=tuple)
    detail: str | None = None

    @property
    def found(self) -> bool:
        return self.status == "found"


def find_event(receipt: Receipt, contract_address: str, signature: str) -> EventLookup:
    """Search ``receipt`` for ``signature`` emitted by ``contract_address``.

    Args:
        receipt:          Receipt to inspect.
        contract_address: Address whose logs are considered.
        signature:        Canonical event signature, e.g.
                          ``"RecordReserved(uint256,string,address)"``.

    Returns:
        An :class:`EventLookup`.

    Raises:
        ValueError: If ``signature`` is not an event signature.
    """
    topic = event_topic(signature)

    if receipt.logs is None:
        return EventLookup(
            status="malformed",
            signature=signature,
            detail=f"Receipt {receipt.tx_hash} carries no log list",
        )

    wanted = contract_address.lower()
    contract_logs = [entry for entry in receipt.logs if entry.address.lower() == wanted]
    if not contract_logs:
        return EventLookup(
            status="no_contract_logs",
            signature=signature,
            detail=f"No events found from contract {contract_address}",
        )

    for entry in contract_logs:
        if entry.topics and entry.topics[0].lower() == topic:
            return EventLookup(status="found", signature=signature, log=entry)

    available = tuple(entry.topics[0] if entry.topics else "" for entry in contract_logs)
    logger.info(
        "Expected event %s not in %s; contract emitted topics %s",
        signature,
        receipt.tx_hash,
        list(available),
    )
    return EventLookup(
        status="not_found",
        signature=signature,
        available_topics=available,
        detail=f"Expected event not found: {signature}",
    )
