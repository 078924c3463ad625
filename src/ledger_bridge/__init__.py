"""Ledger Bridge - dual-ledger confirmation and synchronization service.

Catalog items are created and edited on a low-latency private ledger. A
cross-reference record is then mirrored onto a slower public ledger, and the
two are reconciled without losing or duplicating records when either side
fails or stalls.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("ledger-bridge")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
