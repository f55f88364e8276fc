"""Unit tests for scripts/index_cli.py."""

from __future__ import annotations

import argparse
from dataclasses import asdict
import importlib.util
import json
from pathlib import Path
import sys
from typing import Any

import pytest

from backend.db.enums import ContractKind
from backend.db.models import Asset
from backend.db.session import create_session_factory, create_store_engine
from indexer.events import ChainEvent
from tests.utils.events import ALICE, BOB, OTHER_TOKEN, TOKEN, UNIT, EventStream


ROOT = Path(__file__).resolve().parents[1]
SCRIPT_PATH = ROOT / "scripts" / "index_cli.py"


def _load_cli_module(module_name: str) -> Any:
    spec = importlib.util.spec_from_file_location(module_name, SCRIPT_PATH)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


@pytest.fixture(autouse=True)
def _clear_indexer_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("INDEXER_DATABASE_URL", "INDEXER_RPC_URL", "INDEXER_LOG_LEVEL", "INDEXER_DEFAULT_DECIMALS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INDEXER_ENABLE_MANIFEST_FETCH", "false")


def _write_events(path: Path, events: list[ChainEvent], *, extra_lines: tuple[str, ...] = ()) -> Path:
    lines = [json.dumps(asdict(event)) for event in events]
    lines.extend(extra_lines)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _total_supply(database_url: str) -> int:
    engine = create_store_engine(database_url)
    try:
        with create_session_factory(engine)() as session:
            return session.get(Asset, TOKEN).total_supply_exact
    finally:
        engine.dispose()


def test_sqlalchemy_url_uses_psycopg_driver() -> None:
    module = _load_cli_module("index_cli_url")
    assert module._sqlalchemy_url("postgresql://u@h/db") == "postgresql+psycopg://u@h/db"
    assert module._sqlalchemy_url("postgres://u@h/db") == "postgresql+psycopg://u@h/db"
    assert module._sqlalchemy_url("sqlite:///x.db") == "sqlite:///x.db"


def test_parse_watch_accepts_lowercase_kind() -> None:
    module = _load_cli_module("index_cli_watch")
    assert module._parse_watch(f" {TOKEN} = equity ") == (TOKEN, ContractKind.EQUITY)
    with pytest.raises(argparse.ArgumentTypeError, match="Expected ADDRESS=KIND"):
        module._parse_watch(TOKEN)
    with pytest.raises(argparse.ArgumentTypeError, match="Unknown contract kind"):
        module._parse_watch(f"{TOKEN}=SPACESHIP")


def test_bad_watch_argument_exits_with_usage_error(tmp_path: Path) -> None:
    module = _load_cli_module("index_cli_bad_watch")
    with pytest.raises(SystemExit) as excinfo:
        module.main(
            [
                "--database-url",
                f"sqlite:///{tmp_path / 'store.db'}",
                "ingest",
                "--events",
                str(tmp_path / "events.jsonl"),
                "--watch",
                f"{TOKEN}=SPACESHIP",
            ]
        )
    assert excinfo.value.code == 2


def test_init_db_creates_schema(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    module = _load_cli_module("index_cli_init")
    database = tmp_path / "store.db"

    assert module.main(["--database-url", f"sqlite:///{database}", "init-db"]) == 0
    assert json.loads(capsys.readouterr().out) == {"status": "schema created"}
    assert database.exists()


def test_ingest_reports_outcomes(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    module = _load_cli_module("index_cli_ingest")
    stream = EventStream()
    events = [
        stream.mint(TOKEN, ALICE, 3 * UNIT),
        stream.transfer(TOKEN, ALICE, BOB, UNIT),
        stream.mint(OTHER_TOKEN, ALICE, UNIT),
    ]
    events_path = _write_events(tmp_path / "events.jsonl", events)
    database_url = f"sqlite:///{tmp_path / 'store.db'}"
    argv = [
        "--database-url",
        database_url,
        "ingest",
        "--events",
        str(events_path),
        "--watch",
        f"{TOKEN}=EQUITY",
        "--batch-size",
        "1",
    ]

    assert module.main(argv) == 0
    report = json.loads(capsys.readouterr().out)
    assert report == {"applied": 2, "duplicate": 0, "skipped": 0, "unrouted": 1, "total": 3}
    assert _total_supply(database_url) == 3 * UNIT

    assert module.main(argv) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["duplicate"] == 2
    assert report["applied"] == 0
    assert _total_supply(database_url) == 3 * UNIT


def test_ingest_with_undecodable_lines_exits_nonzero(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    module = _load_cli_module("index_cli_skipped")
    stream = EventStream()
    events_path = _write_events(
        tmp_path / "events.jsonl",
        [stream.mint(TOKEN, ALICE, UNIT)],
        extra_lines=("{not json", json.dumps({"address": TOKEN, "name": "Transfer"})),
    )

    exit_code = module.main(
        [
            "--database-url",
            f"sqlite:///{tmp_path / 'store.db'}",
            "ingest",
            "--events",
            str(events_path),
            "--watch",
            f"{TOKEN}=EQUITY",
        ]
    )

    assert exit_code == 2
    report = json.loads(capsys.readouterr().out)
    assert report["applied"] == 1
    assert report["skipped"] == 2


def test_rebuild_replays_from_an_empty_store(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    module = _load_cli_module("index_cli_rebuild")
    stream = EventStream()
    events_path = _write_events(tmp_path / "events.jsonl", [stream.mint(TOKEN, ALICE, UNIT)])
    database_url = f"sqlite:///{tmp_path / 'store.db'}"
    common = ["--events", str(events_path), "--watch", f"{TOKEN}=EQUITY"]

    assert module.main(["--database-url", database_url, "ingest", *common]) == 0
    assert module.main(["--database-url", database_url, "rebuild", *common]) == 0
    outputs = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert outputs[-1]["applied"] == 1
    assert outputs[-1]["duplicate"] == 0
    assert _total_supply(database_url) == UNIT


def test_schema_commands_run_the_initial_revision(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    module = _load_cli_module("index_cli_revision")
    calls: list[str] = []
    real_upgrade = module.upgrade_schema
    real_downgrade = module.downgrade_schema

    def _upgrade(engine: Any) -> None:
        calls.append("upgrade")
        real_upgrade(engine)

    def _downgrade(engine: Any) -> None:
        calls.append("downgrade")
        real_downgrade(engine)

    monkeypatch.setattr(module, "upgrade_schema", _upgrade)
    monkeypatch.setattr(module, "downgrade_schema", _downgrade)
    stream = EventStream()
    events_path = _write_events(tmp_path / "events.jsonl", [stream.mint(TOKEN, ALICE, UNIT)])
    database_url = f"sqlite:///{tmp_path / 'store.db'}"
    common = ["--events", str(events_path), "--watch", f"{TOKEN}=EQUITY"]

    assert module.main(["--database-url", database_url, "init-db"]) == 0
    assert calls == ["upgrade"]
    assert module.main(["--database-url", database_url, "init-db"]) == 0
    assert calls == ["upgrade"]
    statuses = [json.loads(line)["status"] for line in capsys.readouterr().out.splitlines()]
    assert statuses == ["schema created", "schema exists"]

    assert module.main(["--database-url", database_url, "ingest", *common]) == 0
    assert calls == ["upgrade"]

    assert module.main(["--database-url", database_url, "rebuild", *common]) == 0
    assert calls == ["upgrade", "downgrade", "upgrade"]
    capsys.readouterr()
    assert _total_supply(database_url) == UNIT
