# ============================================================================
# gitsafe/base/config.py
# Client Configuration Management
# ============================================================================
#
# PURPOSE:
# All tunable settings of the client core: where the ledger and the
# confidential relayer live, how long status messages stay visible, how
# aggressively records are fetched, and how logging is set up.
#
# KEY CONCEPTS:
# 1. Frozen dataclasses per concern, composed into one GitSafeConfig
# 2. Environment variables (GITSAFE_*) override defaults via from_env()
# 3. One process-wide instance behind get_config() / set_config()
#
# ============================================================================

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from gitsafe.errors import ErrorCode, GitSafeError

logger = logging.getLogger(__name__)


# ============================================================================
# Ledger Configuration
# ============================================================================

@dataclass(frozen=True)
class LedgerConfig:
    # JSON-RPC endpoint of the ledger node / gateway
    rpc_url: str = "http://127.0.0.1:8545"

    # Address of the repository registry contract (also the address the
    # confidential values are bound to)
    contract_address: str = ""

    # Per-request HTTP timeout in seconds. This bounds a single RPC round trip,
    # never the wait for block inclusion.
    request_timeout: float = 30.0

    # Delay between receipt polls while waiting for a transaction to be mined
    confirmation_poll_interval: float = 1.0


# ============================================================================
# Confidential Value Service Configuration
# ============================================================================

@dataclass(frozen=True)
class ConfidentialConfig:
    # Base URL of the relayer that encrypts inputs and performs public decryption
    relayer_url: str = "http://127.0.0.1:8080"

    # Decryption can take a while on the relayer side
    request_timeout: float = 60.0

    # Encrypted integer type the repository size is stored as
    value_type: str = "euint32"


# ============================================================================
# Transaction Status Configuration
# ============================================================================

@dataclass(frozen=True)
class StatusConfig:
    success_clear_seconds: float = 2.0
    error_clear_seconds: float = 3.0


# ============================================================================
# Record Synchronization Configuration
# ============================================================================

@dataclass(frozen=True)
class SyncConfig:
    # Upper bound on in-flight getRecord calls during one refresh pass
    max_concurrent_fetches: int = 8

    # Records per page in the repository list
    page_size: int = 5


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    # DEBUG / INFO / WARNING / ERROR
    level: str = "INFO"

    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # Optional log file; console only when unset
    file_path: Optional[Path] = None

    max_file_size_mb: int = 10
    backup_count: int = 5


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass
class GitSafeConfig:
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    confidential: ConfidentialConfig = field(default_factory=ConfidentialConfig)
    status: StatusConfig = field(default_factory=StatusConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    log: LogConfig = field(default_factory=LogConfig)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "GitSafeConfig":
        """Build a configuration from GITSAFE_* environment variables."""
        ledger = LedgerConfig(
            rpc_url=os.getenv("GITSAFE_LEDGER_RPC_URL", "http://127.0.0.1:8545"),
            contract_address=os.getenv("GITSAFE_CONTRACT_ADDRESS", ""),
            request_timeout=_env_float("GITSAFE_LEDGER_TIMEOUT", 30.0),
            confirmation_poll_interval=_env_float("GITSAFE_CONFIRMATION_POLL", 1.0),
        )

        confidential = ConfidentialConfig(
            relayer_url=os.getenv("GITSAFE_RELAYER_URL", "http://127.0.0.1:8080"),
            request_timeout=_env_float("GITSAFE_RELAYER_TIMEOUT", 60.0),
            value_type=os.getenv("GITSAFE_VALUE_TYPE", "euint32"),
        )

        status = StatusConfig(
            success_clear_seconds=_env_float("GITSAFE_STATUS_SUCCESS_SECONDS", 2.0),
            error_clear_seconds=_env_float("GITSAFE_STATUS_ERROR_SECONDS", 3.0),
        )

        sync = SyncConfig(
            max_concurrent_fetches=_env_int("GITSAFE_SYNC_CONCURRENCY", 8),
            page_size=_env_int("GITSAFE_PAGE_SIZE", 5),
        )

        log_file = os.getenv("GITSAFE_LOG_FILE")
        log = LogConfig(
            level=os.getenv("GITSAFE_LOG_LEVEL", "INFO"),
            file_path=Path(log_file) if log_file else None,
        )

        return cls(
            ledger=ledger,
            confidential=confidential,
            status=status,
            sync=sync,
            log=log,
            debug=os.getenv("GITSAFE_DEBUG", "false").lower() == "true",
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise GitSafeError(
            f"{name} must be a number, got {raw!r}",
            code=ErrorCode.CONFIG_INVALID,
            details={"variable": name},
        ) from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise GitSafeError(
            f"{name} must be an integer, got {raw!r}",
            code=ErrorCode.CONFIG_INVALID,
            details={"variable": name},
        ) from None


# ============================================================================
# Global Configuration Singleton
# ============================================================================

_config: Optional[GitSafeConfig] = None


def get_config() -> GitSafeConfig:
    """
    Get the global configuration instance.

    Loaded from the environment on first use, then reused.
    """
    global _config
    if _config is None:
        _config = GitSafeConfig.from_env()
    return _config


def set_config(config: Optional[GitSafeConfig]) -> None:
    """Replace the global configuration (mainly used for testing)."""
    global _config
    _config = config


def setup_logging(config: Optional[GitSafeConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Call this once at application startup.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_path is not None:
        from logging.handlers import RotatingFileHandler
        cfg.log.file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            cfg.log.file_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
