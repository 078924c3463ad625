"""Plain receipt types shared by the ledger clients and their callers.

``web3`` hands back ``AttributeDict`` objects full of ``HexBytes``. They are
converted once, in :meth:`Receipt.from_web3`, into frozen dataclasses holding
``0x``-prefixed lowercase hex strings and ints. Everything above the client
(event decoder, store, engine, tests) works with these types only.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


def to_hex(value: Any) -> str:
    """Normalise bytes, ``HexBytes`` or hex strings to ``0x``-prefixed lowercase hex."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value).lower()
    return text if text.startswith("0x") else f"0x{text}"


@dataclass(frozen=True)
class LogEntry:
    """One event log emitted by a transaction.

    Attributes:
        address: Emitting contract address (checksum case preserved).
        topics:  Hex topics; ``topics[0]`` is the event signature hash and
                 indexed arguments follow.
        data:    Hex-encoded non-indexed arguments.
    """

    address: str
    topics: tuple[str, ...]
    data: str = "0x"

    def indexed_int(self, position: int) -> int:
        """Decode the indexed ``uint256`` argument at ``topics[position]``."""
        return int(self.topics[position], 16)


@dataclass(frozen=True)
class Receipt:
    """The mined outcome of a transaction.

    Attributes:
        tx_hash:      Transaction hash.
        status:       ``True`` when execution succeeded, ``False`` on revert.
        block_number: Block the transaction was mined in.
        gas_used:     Gas consumed by the transaction.
        from_address: Recovered sender of the transaction.
        to_address:   Target address, ``None`` for contract creation.
        logs:         Emitted event logs in emission order, or ``None`` when the
                      node returned a receipt without a ``logs`` field.
    """

    tx_hash: str
    status: bool
    block_number: int
    gas_used: int
    from_address: str
    to_address: str | None = None
    logs: tuple[LogEntry, ...] | None = field(default_factory=tuple)

    @classmethod
    def from_web3(cls, raw: Mapping[str, Any]) -> Receipt:
        """Convert a ``web3`` receipt mapping.

        Raises:
            KeyError: If a mandatory receipt field is missing.
        """
        raw_logs = raw.get("logs")
        logs = None
        if raw_logs is not None:
            logs = tuple(
                LogEntry(
                    address=str(entry["address"]),
                    topics=tuple(to_hex(topic) for topic in entry.get("topics", ())),
                    data=to_hex(entry.get("data", b"")),
                )
                for entry in raw_logs
            )
        return cls(
            tx_hash=to_hex(raw["transactionHash"]),
            status=bool(raw["status"]),
            block_number=int(raw["blockNumber"]),
            gas_used=int(raw["gasUsed"]),
            from_address=str(raw["from"]),
            to_address=str(raw["to"]) if raw.get("to") else None,
            logs=logs,
        )
