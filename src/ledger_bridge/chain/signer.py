"""Transaction signing capability.

A :class:`Signer` holds one private key for the lifetime of the process and
is injected into the ledger client that needs it. Nothing else in the code
base sees key material: callers get an address and a ``sign_transaction``
method.

:class:`SignerRegistry` maps test-harness ``user_id`` values to additional
signers. It exists for harness flows only; production transactions are
always signed with the ledger's configured key.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount

logger = logging.getLogger(__name__)


class Signer:
    """Sign transactions with a single process-held key.

    Attributes:
        address: Checksum address derived from the key.
    """

    def __init__(self, account: LocalAccount) -> None:
        self._account = account

    @classmethod
    def from_private_key(cls, private_key: str) -> Signer:
        """Build a signer from a hex private key.

        Raises:
            ValueError: If the key is empty or not a valid secp256k1 key.
        """
        if not private_key or not private_key.strip():
            raise ValueError("A private key is required to build a signer.")
        try:
            account = Account.from_key(private_key.strip())
        except Exception:  # noqa: BLE001
            # The library message may echo the key; do not chain it.
            raise ValueError("Invalid private key.") from None
        return cls(account)

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, transaction: Mapping[str, Any]) -> bytes:
        """Sign ``transaction`` and return the raw RLP-encoded bytes."""
        signed = self._account.sign_transaction(dict(transaction))
        return bytes(signed.raw_transaction)

    def __repr__(self) -> str:
        return f"Signer(address={self.address!r})"


class SignerRegistry:
    """Test-wallet signers keyed by 1-based user id.

    ``user_id`` ``"1"`` selects the first configured key, ``"2"`` the second,
    and so on, which matches how harness clients number their test users.
    """

    def __init__(self, signers: Mapping[str, Signer] | None = None) -> None:
        self._signers: dict[str, Signer] = dict(signers or {})

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> SignerRegistry:
        signers = {
            str(index): Signer.from_private_key(key) for index, key in enumerate(keys, start=1)
        }
        logger.info("Loaded %d test wallet(s)", len(signers))
        return cls(signers)

    def for_user(self, user_id: str | int) -> Signer:
        """Return the signer for ``user_id``.

        Raises:
            KeyError: If no test wallet is registered under ``user_id``.
        """
        key = str(user_id).strip()
        if key not in self._signers:
            raise KeyError(f"Invalid test user ID: {user_id}")
        return self._signers[key]

    def __len__(self) -> int:
        return len(self._signers)
