"""
Process-lifetime service wiring.

``build_services`` constructs both ledger clients, their signers, the
cross-reference store, the catalog reader, the confirmation engine and the
test-wallet harness from a :class:`~ledger_bridge.config.BridgeConfig`. The
API server builds one container at startup and closes it at shutdown; tests
build their own container around fake ledgers.

Signing keys are read from configuration exactly once, here. A ledger
without a configured key gets a client that can read but not send.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ledger_bridge.catalog.reader import CatalogReader
from ledger_bridge.chain.abi import CATALOG_ABI, PUBLIC_RECORD_ABI, load_abi
from ledger_bridge.chain.client import LedgerClient
from ledger_bridge.chain.signer import Signer, SignerRegistry
from ledger_bridge.config import BridgeConfig
from ledger_bridge.config import config as default_config
from ledger_bridge.confirmation.engine import ConfirmationEngine, EngineSettings
from ledger_bridge.confirmation.harness import WalletHarness
from ledger_bridge.records.store import CrossReferenceStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BridgeServices:
    """
    Everything a request handler needs.

    Attributes:
        private: Client for the private catalog contract.
        public: Client for the public record contract.
        store: Cross-reference store over ``public``.
        catalog: Item read accessors over ``private``.
        engine: The confirmation engine.
        harness: Test-wallet harness (may be disabled).
    """

    private: LedgerClient
    public: LedgerClient
    store: CrossReferenceStore
    catalog: CatalogReader
    engine: ConfirmationEngine
    harness: WalletHarness

    def close(self) -> None:
        self.engine.close()


def _signer_or_none(label: str, private_key: str) -> Signer | None:
    if not private_key:
        logger.warning("%s ledger: no signing key configured, writes are disabled", label)
        return None
    signer = Signer.from_private_key(private_key)
    logger.info("%s ledger: signing as %s", label, signer.address)
    return signer


def build_services(cfg: BridgeConfig | None = None) -> BridgeServices:
    """
    Build the service container.

    No network call is made here; the first RPC happens on the first request.

    Raises:
        ValueError: If a contract address is missing, a key is invalid, a
            confirmation setting is out of range, or an ABI override cannot
            be parsed.
    """
    cfg = cfg or default_config
    settings = EngineSettings.from_config(cfg)

    private = LedgerClient(
        name="private",
        rpc_url=cfg.private_ledger.rpc_url,
        contract_address=cfg.private_ledger.contract_address,
        abi=load_abi(CATALOG_ABI, cfg.private_ledger.abi_path),
        signer=_signer_or_none("private", cfg.private_ledger.private_key),
        request_timeout_seconds=cfg.private_ledger.request_timeout_seconds,
        receipt_timeout_seconds=cfg.private_ledger.receipt_timeout_seconds,
    )
    public = LedgerClient(
        name="public",
        rpc_url=cfg.public_ledger.rpc_url,
        contract_address=cfg.public_ledger.contract_address,
        abi=load_abi(PUBLIC_RECORD_ABI, cfg.public_ledger.abi_path),
        signer=_signer_or_none("public", cfg.public_ledger.private_key),
        request_timeout_seconds=cfg.public_ledger.request_timeout_seconds,
        receipt_timeout_seconds=cfg.public_ledger.receipt_timeout_seconds,
        gas_multiplier=cfg.public_ledger.gas_multiplier,
    )

    store = CrossReferenceStore(public, placeholder=cfg.confirmation.placeholder)
    catalog = CatalogReader(private)
    engine = ConfirmationEngine(private, store, catalog, settings)

    wallets = SignerRegistry()
    if cfg.harness.enabled:
        wallets = SignerRegistry.from_keys(cfg.harness.test_wallet_keys)
    harness = WalletHarness(engine, private, wallets, enabled=cfg.harness.enabled)

    return BridgeServices(
        private=private,
        public=public,
        store=store,
        catalog=catalog,
        engine=engine,
        harness=harness,
    )
