"""Bundled contract ABIs."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path

CATALOG_ABI = "catalog.json"
PUBLIC_RECORD_ABI = "public_record.json"


def load_abi(name: str, override_path: str = "") -> list[dict]:
    """Load a contract ABI.

    Args:
        name:          Bundled ABI file name (``CATALOG_ABI`` or
                       ``PUBLIC_RECORD_ABI``).
        override_path: Optional path to a compiled contract artifact or a bare
                       ABI list. Truffle/Hardhat artifacts are accepted; their
                       ``abi`` key is used.

    Raises:
        FileNotFoundError: If ``override_path`` does not exist.
        ValueError:        If the file holds no ABI list.
    """
    if override_path:
        text = Path(override_path).read_text(encoding="utf-8")
    else:
        text = resources.files(__package__).joinpath(name).read_text(encoding="utf-8")

    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("abi")
    if not isinstance(data, list):
        raise ValueError(f"No ABI list found in {override_path or name}")
    return data
