from __future__ import annotations

import pytest

from indexer.config import load_indexer_config


_ENV_KEYS = (
    "INDEXER_DATABASE_URL",
    "INDEXER_RPC_URL",
    "INDEXER_IPFS_GATEWAY_URL",
    "INDEXER_MANIFEST_TIMEOUT_SECONDS",
    "INDEXER_MANIFEST_MAX_ATTEMPTS",
    "INDEXER_DEFAULT_DECIMALS",
    "INDEXER_LOG_LEVEL",
    "INDEXER_ENABLE_MANIFEST_FETCH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)



def test_load_indexer_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INDEXER_DATABASE_URL", "sqlite:///indexer.db")

    cfg = load_indexer_config()
    assert cfg.database_url == "sqlite:///indexer.db"
    assert cfg.rpc_url == ""
    assert cfg.ipfs_gateway_url == "https://ipfs.io/ipfs"
    assert cfg.manifest_timeout_seconds == 10.0
    assert cfg.manifest_max_attempts == 3
    assert cfg.default_decimals == 18
    assert cfg.log_level == "INFO"
    assert cfg.enable_manifest_fetch is True



def test_explicit_database_url_overrides_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INDEXER_DATABASE_URL", "sqlite:///env.db")
    assert load_indexer_config("sqlite:///cli.db ").database_url == "sqlite:///cli.db"



def test_missing_database_url_is_rejected() -> None:
    with pytest.raises(RuntimeError, match="INDEXER_DATABASE_URL"):
        load_indexer_config()



def test_load_indexer_config_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INDEXER_DATABASE_URL", "sqlite://")

    monkeypatch.setenv("INDEXER_ENABLE_MANIFEST_FETCH", "maybe")
    with pytest.raises(RuntimeError, match="Invalid boolean"):
        load_indexer_config()
    monkeypatch.setenv("INDEXER_ENABLE_MANIFEST_FETCH", "off")
    assert load_indexer_config().enable_manifest_fetch is False

    monkeypatch.setenv("INDEXER_MANIFEST_MAX_ATTEMPTS", "0")
    with pytest.raises(RuntimeError, match="MAX_ATTEMPTS must be >= 1"):
        load_indexer_config()
    monkeypatch.setenv("INDEXER_MANIFEST_MAX_ATTEMPTS", "2")

    monkeypatch.setenv("INDEXER_DEFAULT_DECIMALS", "300")
    with pytest.raises(RuntimeError, match="INDEXER_DEFAULT_DECIMALS"):
        load_indexer_config()
    monkeypatch.setenv("INDEXER_DEFAULT_DECIMALS", "six")
    with pytest.raises(RuntimeError, match="Invalid integer"):
        load_indexer_config()
    monkeypatch.setenv("INDEXER_DEFAULT_DECIMALS", "6")

    monkeypatch.setenv("INDEXER_LOG_LEVEL", "chatty")
    with pytest.raises(RuntimeError, match="Invalid INDEXER_LOG_LEVEL"):
        load_indexer_config()
