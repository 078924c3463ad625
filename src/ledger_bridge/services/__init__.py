"""Service container wiring ledgers, store, engine and harness together."""

from ledger_bridge.services.container import BridgeServices, build_services

__all__ = ["BridgeServices", "build_services"]
