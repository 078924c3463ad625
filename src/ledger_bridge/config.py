"""
Service configuration management.

This module loads the bridge configuration from multiple sources with a clear
priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/server.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The
BridgeConfig dataclass provides typed access to all settings.

Usage:
    from ledger_bridge.config import config

    print(config.public_ledger.rpc_url)
    print(config.confirmation.max_retries)

Environment Variable Mapping:
    BRIDGE_HOST                      -> server.host
    BRIDGE_PORT                      -> server.port
    BRIDGE_CORS_ORIGINS              -> security.cors_origins
    BRIDGE_LOG_LEVEL                 -> logging.level
    BRIDGE_LOG_FORMAT                -> logging.format
    BRIDGE_PRIVATE_RPC_URL           -> private_ledger.rpc_url
    BRIDGE_PRIVATE_CONTRACT_ADDRESS  -> private_ledger.contract_address
    BRIDGE_PRIVATE_KEY               -> private_ledger.private_key
    BRIDGE_PUBLIC_RPC_URL            -> public_ledger.rpc_url
    BRIDGE_PUBLIC_CONTRACT_ADDRESS   -> public_ledger.contract_address
    BRIDGE_PUBLIC_KEY                -> public_ledger.private_key
    BRIDGE_MAX_RETRIES               -> confirmation.max_retries
    BRIDGE_RETRY_DELAY_SECONDS       -> confirmation.retry_delay_seconds
    BRIDGE_PATCH_TIMEOUT_SECONDS     -> confirmation.patch_timeout_seconds
    BRIDGE_HARNESS_ENABLED           -> harness.enabled
    BRIDGE_TEST_WALLET_KEYS          -> harness.test_wallet_keys

Private keys are only ever read here. They are handed to
:class:`~ledger_bridge.chain.signer.Signer` at startup and never printed.
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "server.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "server.example.ini"


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class ServerSettings:
    """Network server configuration."""

    host: str = "0.0.0.0"  # nosec B104 - intentional for server binding
    port: int = 8000


@dataclass
class SecuritySettings:
    """Security-related configuration."""

    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = field(default_factory=lambda: ["*"])
    cors_allow_headers: list[str] = field(default_factory=lambda: ["*"])
    docs_enabled: bool = True


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class PrivateLedgerSettings:
    """Connection settings for the private (source of truth) ledger."""

    rpc_url: str = "http://127.0.0.1:8545"
    contract_address: str = ""
    private_key: str = ""
    abi_path: str = ""  # empty = bundled ABI
    request_timeout_seconds: float = 10.0
    receipt_timeout_seconds: float = 30.0
    add_event_signature: str = "ItemAdded(uint256,string,address)"
    edit_event_signature: str = "ItemEdited(uint256,string,address)"


@dataclass
class PublicLedgerSettings:
    """Connection settings for the public (cross-reference) ledger."""

    rpc_url: str = "http://127.0.0.1:8546"
    contract_address: str = ""
    private_key: str = ""
    abi_path: str = ""  # empty = bundled ABI
    request_timeout_seconds: float = 20.0
    receipt_timeout_seconds: float = 120.0
    gas_multiplier: float = 1.2


@dataclass
class ConfirmationSettings:
    """Retry, race and deadline parameters for the confirmation engine."""

    max_retries: int = 10
    retry_delay_seconds: float = 2.0
    patch_timeout_seconds: float = 30.0
    request_timeout_seconds: float = 120.0
    placeholder: str = "pending"
    patch_workers: int = 4


@dataclass
class HarnessSettings:
    """Server-signed test-wallet flows. Never enable in production."""

    enabled: bool = False
    test_wallet_keys: list[str] = field(default_factory=list)


@dataclass
class BridgeConfig:
    """
    Complete service configuration.

    This is the main configuration object that aggregates all settings
    sections. Access via the module-level `config` singleton.
    """

    server: ServerSettings = field(default_factory=ServerSettings)
    security: SecuritySettings = field(default_factory=SecuritySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    private_ledger: PrivateLedgerSettings = field(default_factory=PrivateLedgerSettings)
    public_ledger: PublicLedgerSettings = field(default_factory=PublicLedgerSettings)
    confirmation: ConfirmationSettings = field(default_factory=ConfirmationSettings)
    harness: HarnessSettings = field(default_factory=HarnessSettings)


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string to list, stripping whitespace."""
    if not value or value.strip() == "":
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _load_ledger_section(
    parser: configparser.ConfigParser,
    section: str,
    settings: PrivateLedgerSettings | PublicLedgerSettings,
) -> None:
    """Load the fields shared by both ledger sections."""
    if not parser.has_section(section):
        return
    for name in ("rpc_url", "contract_address", "private_key", "abi_path"):
        if parser.has_option(section, name):
            setattr(settings, name, parser.get(section, name).strip())
    for name in ("request_timeout_seconds", "receipt_timeout_seconds"):
        if parser.has_option(section, name):
            setattr(settings, name, parser.getfloat(section, name))


def _load_from_ini(parser: configparser.ConfigParser, cfg: BridgeConfig) -> None:
    """Load configuration from parsed INI file into BridgeConfig."""
    # Server section
    if parser.has_section("server"):
        if parser.has_option("server", "host"):
            cfg.server.host = parser.get("server", "host")
        if parser.has_option("server", "port"):
            cfg.server.port = parser.getint("server", "port")

    # Security section
    if parser.has_section("security"):
        if parser.has_option("security", "cors_origins"):
            cfg.security.cors_origins = _parse_list(parser.get("security", "cors_origins"))
        if parser.has_option("security", "cors_allow_credentials"):
            cfg.security.cors_allow_credentials = _parse_bool(
                parser.get("security", "cors_allow_credentials")
            )
        if parser.has_option("security", "docs_enabled"):
            cfg.security.docs_enabled = _parse_bool(parser.get("security", "docs_enabled"))

    # Logging section
    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed", "json"):
                cfg.logging.format = val  # type: ignore[assignment]

    # Ledger sections
    _load_ledger_section(parser, "private_ledger", cfg.private_ledger)
    if parser.has_section("private_ledger"):
        if parser.has_option("private_ledger", "add_event_signature"):
            cfg.private_ledger.add_event_signature = parser.get(
                "private_ledger", "add_event_signature"
            ).strip()
        if parser.has_option("private_ledger", "edit_event_signature"):
            cfg.private_ledger.edit_event_signature = parser.get(
                "private_ledger", "edit_event_signature"
            ).strip()

    _load_ledger_section(parser, "public_ledger", cfg.public_ledger)
    if parser.has_section("public_ledger"):
        if parser.has_option("public_ledger", "gas_multiplier"):
            cfg.public_ledger.gas_multiplier = parser.getfloat("public_ledger", "gas_multiplier")

    # Confirmation section
    if parser.has_section("confirmation"):
        if parser.has_option("confirmation", "max_retries"):
            cfg.confirmation.max_retries = parser.getint("confirmation", "max_retries")
        if parser.has_option("confirmation", "retry_delay_seconds"):
            cfg.confirmation.retry_delay_seconds = parser.getfloat(
                "confirmation", "retry_delay_seconds"
            )
        if parser.has_option("confirmation", "patch_timeout_seconds"):
            cfg.confirmation.patch_timeout_seconds = parser.getfloat(
                "confirmation", "patch_timeout_seconds"
            )
        if parser.has_option("confirmation", "request_timeout_seconds"):
            cfg.confirmation.request_timeout_seconds = parser.getfloat(
                "confirmation", "request_timeout_seconds"
            )
        if parser.has_option("confirmation", "placeholder"):
            cfg.confirmation.placeholder = parser.get("confirmation", "placeholder").strip()
        if parser.has_option("confirmation", "patch_workers"):
            cfg.confirmation.patch_workers = parser.getint("confirmation", "patch_workers")

    # Harness section
    if parser.has_section("harness"):
        if parser.has_option("harness", "enabled"):
            cfg.harness.enabled = _parse_bool(parser.get("harness", "enabled"))
        if parser.has_option("harness", "test_wallet_keys"):
            cfg.harness.test_wallet_keys = _parse_list(parser.get("harness", "test_wallet_keys"))


def _apply_env_overrides(cfg: BridgeConfig) -> None:
    """Apply environment variable overrides to configuration."""
    # Server settings
    if env_host := os.getenv("BRIDGE_HOST"):
        cfg.server.host = env_host
    if env_port := os.getenv("BRIDGE_PORT"):
        cfg.server.port = int(env_port)
    if env_cors := os.getenv("BRIDGE_CORS_ORIGINS"):
        cfg.security.cors_origins = _parse_list(env_cors)

    # Logging settings
    if env_log := os.getenv("BRIDGE_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()
    if env_log_format := os.getenv("BRIDGE_LOG_FORMAT"):
        if env_log_format.lower() in ("simple", "detailed", "json"):
            cfg.logging.format = env_log_format.lower()  # type: ignore[assignment]

    # Private ledger
    if env_private_url := os.getenv("BRIDGE_PRIVATE_RPC_URL"):
        cfg.private_ledger.rpc_url = env_private_url
    if env_private_contract := os.getenv("BRIDGE_PRIVATE_CONTRACT_ADDRESS"):
        cfg.private_ledger.contract_address = env_private_contract
    if env_private_key := os.getenv("BRIDGE_PRIVATE_KEY"):
        cfg.private_ledger.private_key = env_private_key

    # Public ledger
    if env_public_url := os.getenv("BRIDGE_PUBLIC_RPC_URL"):
        cfg.public_ledger.rpc_url = env_public_url
    if env_public_contract := os.getenv("BRIDGE_PUBLIC_CONTRACT_ADDRESS"):
        cfg.public_ledger.contract_address = env_public_contract
    if env_public_key := os.getenv("BRIDGE_PUBLIC_KEY"):
        cfg.public_ledger.private_key = env_public_key

    # Confirmation engine
    if env_retries := os.getenv("BRIDGE_MAX_RETRIES"):
        cfg.confirmation.max_retries = int(env_retries)
    if env_delay := os.getenv("BRIDGE_RETRY_DELAY_SECONDS"):
        cfg.confirmation.retry_delay_seconds = float(env_delay)
    if env_patch_timeout := os.getenv("BRIDGE_PATCH_TIMEOUT_SECONDS"):
        cfg.confirmation.patch_timeout_seconds = float(env_patch_timeout)

    # Harness
    if env_harness := os.getenv("BRIDGE_HARNESS_ENABLED"):
        cfg.harness.enabled = _parse_bool(env_harness)
    if env_wallets := os.getenv("BRIDGE_TEST_WALLET_KEYS"):
        cfg.harness.test_wallet_keys = _parse_list(env_wallets)


def load_config() -> BridgeConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. config/server.ini
        3. config/server.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        BridgeConfig: Fully populated configuration object.
    """
    cfg = BridgeConfig()

    config_file = None
    if CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        config_file = CONFIG_EXAMPLE

    if config_file:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    _apply_env_overrides(cfg)

    return cfg


def reload_config() -> "BridgeConfig":
    """
    Reload configuration from disk and environment.

    This updates the module-level `config` singleton. Already-built services
    keep the settings they were constructed with.
    """
    global config
    config = load_config()
    return config


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_config_status() -> dict:
    """
    Get configuration status for diagnostics.

    Key material is reported only as present/absent.
    """
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "private_rpc_url": config.private_ledger.rpc_url,
        "private_key_configured": bool(config.private_ledger.private_key),
        "public_rpc_url": config.public_ledger.rpc_url,
        "public_key_configured": bool(config.public_ledger.private_key),
        "harness_enabled": config.harness.enabled,
        "test_wallets": len(config.harness.test_wallet_keys),
    }


def print_config_summary() -> None:
    """Print a summary of current configuration to stdout."""
    status = get_config_status()
    print("\n" + "=" * 60)
    print("LEDGER BRIDGE CONFIGURATION")
    print("=" * 60)
    print(f"Config file: {status['config_file_path']}")
    print(f"File exists: {status['config_file_exists']}")
    if status["using_example"]:
        print("WARNING: Using example config (copy to server.ini for production)")
    print("-" * 60)
    print(f"Server:        {config.server.host}:{config.server.port}")
    print(f"Private RPC:   {status['private_rpc_url']}")
    print(f"Private key:   {'configured' if status['private_key_configured'] else 'MISSING'}")
    print(f"Public RPC:    {status['public_rpc_url']}")
    print(f"Public key:    {'configured' if status['public_key_configured'] else 'MISSING'}")
    print(
        f"Retries:       {config.confirmation.max_retries} x "
        f"{config.confirmation.retry_delay_seconds:g}s"
    )
    print(f"Patch timeout: {config.confirmation.patch_timeout_seconds:g}s")
    print(f"Harness:       {status['harness_enabled']} ({status['test_wallets']} wallets)")
    print(f"Log level:     {config.logging.level}")
    print("=" * 60 + "\n")
