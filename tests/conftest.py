"""
Shared pytest fixtures for the ledger bridge test suite.

This module provides fixtures that are automatically available to all test files:
- In-memory private and public ledgers (see ``tests/fakes.py``)
- A cross-reference store, catalog reader and confirmation engine wired to them
- A service container and FastAPI TestClient built around the fakes

Engine settings are tightened for tests: no delay between polls and a short
patch race, so failure paths finish in milliseconds.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from ledger_bridge.catalog.reader import CatalogReader
from ledger_bridge.chain.signer import Signer, SignerRegistry
from ledger_bridge.confirmation.engine import ConfirmationEngine, EngineSettings
from ledger_bridge.confirmation.harness import WalletHarness
from ledger_bridge.records.store import CrossReferenceStore
from ledger_bridge.services.container import BridgeServices
from tests.fakes import FakePrivateLedger, FakePublicLedger

# Well-known development keys (Hardhat accounts #1 and #2). Never funded outside
# local chains.
TEST_WALLET_KEYS = [
    "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
]

# ============================================================================
# LEDGER FIXTURES
# ============================================================================


@pytest.fixture
def private_ledger() -> FakePrivateLedger:
    return FakePrivateLedger()


@pytest.fixture
def public_ledger() -> FakePublicLedger:
    return FakePublicLedger()


@pytest.fixture
def store(public_ledger: FakePublicLedger) -> CrossReferenceStore:
    return CrossReferenceStore(public_ledger, placeholder="pending")


@pytest.fixture
def catalog(private_ledger: FakePrivateLedger) -> CatalogReader:
    return CatalogReader(private_ledger)


# ============================================================================
# ENGINE FIXTURES
# ============================================================================


@pytest.fixture
def engine_settings() -> EngineSettings:
    return EngineSettings(
        max_retries=3,
        retry_delay_seconds=0.0,
        patch_timeout_seconds=2.0,
        request_timeout_seconds=30.0,
        patch_workers=2,
    )


@pytest.fixture
def engine(
    private_ledger: FakePrivateLedger,
    store: CrossReferenceStore,
    catalog: CatalogReader,
    engine_settings: EngineSettings,
) -> Generator[ConfirmationEngine, None, None]:
    """
    Confirmation engine over the fake ledgers.

    Closed after the test so abandoned patch threads do not outlive it.
    """
    engine = ConfirmationEngine(private_ledger, store, catalog, engine_settings)
    yield engine
    engine.close()


@pytest.fixture
def wallets() -> SignerRegistry:
    return SignerRegistry.from_keys(TEST_WALLET_KEYS)


@pytest.fixture
def harness(
    engine: ConfirmationEngine,
    private_ledger: FakePrivateLedger,
    wallets: SignerRegistry,
) -> WalletHarness:
    return WalletHarness(engine, private_ledger, wallets, enabled=True)


# ============================================================================
# API FIXTURES
# ============================================================================


@pytest.fixture
def services(
    private_ledger: FakePrivateLedger,
    public_ledger: FakePublicLedger,
    store: CrossReferenceStore,
    catalog: CatalogReader,
    engine: ConfirmationEngine,
    harness: WalletHarness,
) -> BridgeServices:
    return BridgeServices(
        private=private_ledger,
        public=public_ledger,
        store=store,
        catalog=catalog,
        engine=engine,
        harness=harness,
    )


@pytest.fixture
def test_client(services: BridgeServices) -> Generator[TestClient, None, None]:
    """
    FastAPI TestClient over the fake service container.

    The app is built with pre-made services, so its lifespan builds nothing
    and closes nothing.
    """
    from ledger_bridge.api.server import create_app

    with TestClient(create_app(services=services)) as client:
        yield client


@pytest.fixture
def first_wallet() -> Signer:
    return Signer.from_private_key(TEST_WALLET_KEYS[0])
