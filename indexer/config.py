"""Environment-backed configuration for the event indexer."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os

from indexer.numeric import MAX_DECIMALS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexerConfig:
    """Canonical configuration surface for indexing runs."""

    database_url: str
    rpc_url: str
    ipfs_gateway_url: str
    manifest_timeout_seconds: float
    manifest_max_attempts: int
    default_decimals: int
    log_level: str
    enable_manifest_fetch: bool


_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def _read_env(name: str, default: str | None = None) -> str:
    value = os.getenv(name, default)
    if value is None or value.strip() == "":
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value.strip()


def _read_optional(name: str) -> str:
    raw = os.getenv(name)
    return raw.strip() if raw is not None else ""


def _read_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise RuntimeError(f"Invalid boolean value for {name}: {raw}")


def _read_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value for {name}: {raw}") from exc
    return value


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value for {name}: {raw}") from exc
    return value


def load_indexer_config(database_url: str | None = None) -> IndexerConfig:
    """Load and validate indexer configuration from the environment.

    An explicit ``database_url`` takes precedence over ``INDEXER_DATABASE_URL``.
    """
    database_url = database_url.strip() if database_url else _read_env("INDEXER_DATABASE_URL")
    rpc_url = _read_optional("INDEXER_RPC_URL")
    ipfs_gateway_url = _read_env("INDEXER_IPFS_GATEWAY_URL", "https://ipfs.io/ipfs").rstrip("/")
    manifest_timeout_seconds = _read_float("INDEXER_MANIFEST_TIMEOUT_SECONDS", 10.0)
    manifest_max_attempts = _read_int("INDEXER_MANIFEST_MAX_ATTEMPTS", 3)
    default_decimals = _read_int("INDEXER_DEFAULT_DECIMALS", 18)
    log_level = _read_env("INDEXER_LOG_LEVEL", "INFO").upper()
    enable_manifest_fetch = _read_bool("INDEXER_ENABLE_MANIFEST_FETCH", True)

    if manifest_timeout_seconds <= 0:
        raise RuntimeError("INDEXER_MANIFEST_TIMEOUT_SECONDS must be > 0")
    if manifest_max_attempts < 1:
        raise RuntimeError("INDEXER_MANIFEST_MAX_ATTEMPTS must be >= 1")
    if default_decimals < 0 or default_decimals > MAX_DECIMALS:
        raise RuntimeError(f"INDEXER_DEFAULT_DECIMALS must be within [0, {MAX_DECIMALS}]")
    if log_level not in _LOG_LEVELS:
        raise RuntimeError(f"Invalid INDEXER_LOG_LEVEL: {log_level}")

    return IndexerConfig(
        database_url=database_url,
        rpc_url=rpc_url,
        ipfs_gateway_url=ipfs_gateway_url,
        manifest_timeout_seconds=manifest_timeout_seconds,
        manifest_max_attempts=manifest_max_attempts,
        default_decimals=default_decimals,
        log_level=log_level,
        enable_manifest_fetch=enable_manifest_fetch,
    )


def configure_logging(config: IndexerConfig) -> None:
    """Install the root log format used by the command line tools."""
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
