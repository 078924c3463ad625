"""Tests for dynamic version management.

Verifies that ``ledger_bridge.__version__`` is resolved from the installed
package metadata (``pyproject.toml``) and that the FastAPI app and the root
``/`` endpoint report the same value.
"""

from __future__ import annotations

import re

import pytest

import ledger_bridge

# major.minor.patch with optional pre-release suffix (e.g. "0.1.0", "0.0.0-dev").
_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(-[A-Za-z0-9]+(\.[A-Za-z0-9]+)*)?$")


@pytest.mark.unit
class TestVersionAttribute:
    """Verify the ``ledger_bridge.__version__`` package attribute."""

    def test_version_is_a_string(self) -> None:
        assert isinstance(ledger_bridge.__version__, str)
        assert ledger_bridge.__version__

    def test_version_matches_semver(self) -> None:
        assert _SEMVER_RE.match(ledger_bridge.__version__), (
            f"__version__ {ledger_bridge.__version__!r} does not match "
            f"expected semver pattern (major.minor.patch[-prerelease])"
        )

    def test_version_is_not_fallback(self) -> None:
        """The ``0.0.0-dev`` fallback only appears when the package is not installed."""
        assert ledger_bridge.__version__ != "0.0.0-dev", "is the package installed?"


@pytest.mark.api
class TestVersionInApp:
    """Verify version consistency across the FastAPI app surfaces."""

    def test_openapi_version_matches_package(self) -> None:
        from ledger_bridge.api.server import app

        assert app.version == ledger_bridge.__version__

    def test_root_endpoint_version_matches_package(self, test_client) -> None:
        data = test_client.get("/").json()

        assert data["version"] == ledger_bridge.__version__
