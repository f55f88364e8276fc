#!/usr/bin/env python3
"""Replay decoded contract events into the entity store."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Iterator, Optional, Sequence

from sqlalchemy.engine import Engine

# Ensure repository root is importable when script is executed by path.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from backend.db.enums import ContractKind
from backend.db.session import (
    create_session_factory,
    create_store_engine,
    downgrade_schema,
    schema_exists,
    upgrade_schema,
)
from indexer.chain import ChainReader, StaticChainReader, Web3ChainReader
from indexer.config import IndexerConfig, configure_logging, load_indexer_config
from indexer.engine import EventIndexer, IndexingReport
from indexer.errors import MalformedEventError
from indexer.events import ChainEvent
from indexer.manifest import DisabledManifestFetcher, IpfsGatewayFetcher, ManifestFetcher

logger = logging.getLogger("index_cli")


def _sqlalchemy_url(url: str) -> str:
    """Route plain PostgreSQL URLs through the psycopg 3 driver."""
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def _parse_watch(value: str) -> tuple[str, ContractKind]:
    address, separator, kind_name = value.partition("=")
    if not separator or not address.strip() or not kind_name.strip():
        raise argparse.ArgumentTypeError(f"Expected ADDRESS=KIND, got: {value}")
    try:
        kind = ContractKind(kind_name.strip().upper())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Unknown contract kind: {kind_name}") from exc
    return address.strip(), kind


def _read_events(path: Path) -> Iterator[Optional[ChainEvent]]:
    """Yield one event per JSONL line; undecodable lines yield ``None``."""
    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                yield ChainEvent.from_mapping(json.loads(line))
            except (json.JSONDecodeError, MalformedEventError) as exc:
                logger.warning("Skipping line %d of %s: %s", line_number, path, exc)
                yield None


def _build_chain_reader(config: IndexerConfig, fixture: Optional[Path]) -> ChainReader:
    if fixture is not None:
        return StaticChainReader.from_fixture(fixture)
    if config.rpc_url:
        return Web3ChainReader(config.rpc_url)
    logger.warning("No RPC URL or chain fixture; every view call falls back to defaults.")
    return StaticChainReader()


def _build_manifest_fetcher(config: IndexerConfig) -> ManifestFetcher:
    if not config.enable_manifest_fetch:
        return DisabledManifestFetcher()
    return IpfsGatewayFetcher(
        gateway_url=config.ipfs_gateway_url,
        timeout_seconds=config.manifest_timeout_seconds,
        max_attempts=config.manifest_max_attempts,
    )


def _ingest(engine: Engine, config: IndexerConfig, args: argparse.Namespace) -> IndexingReport:
    session_factory = create_session_factory(engine)
    report = IndexingReport()
    with session_factory() as session:
        indexer = EventIndexer(
            session,
            _build_chain_reader(config, args.chain_fixture),
            _build_manifest_fetcher(config),
            default_decimals=config.default_decimals,
        )
        for address, kind in args.watch:
            indexer.watch(address, kind)
        session.commit()

        pending = 0
        for event in _read_events(args.events):
            if event is None:
                report.skipped += 1
                continue
            report.record(indexer.process(event))
            pending += 1
            if pending >= args.batch_size:
                session.commit()
                pending = 0
        session.commit()
    return report


def _add_ingest_arguments(command: argparse.ArgumentParser) -> None:
    command.add_argument("--events", required=True, type=Path, help="JSONL file of decoded events")
    command.add_argument(
        "--watch",
        action="append",
        default=[],
        type=_parse_watch,
        metavar="ADDRESS=KIND",
        help="Statically known contract to watch (repeatable)",
    )
    command.add_argument("--chain-fixture", type=Path, default=None, help="Recorded view-call results")
    command.add_argument("--batch-size", type=int, default=500, help="Events per commit")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Contract event indexer CLI")
    parser.add_argument("--database-url", help="Entity store URL (defaults to INDEXER_DATABASE_URL)")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init-db", help="Create the entity store schema")

    ingest_cmd = subparsers.add_parser("ingest", help="Apply decoded events to the entity store")
    _add_ingest_arguments(ingest_cmd)

    rebuild_cmd = subparsers.add_parser("rebuild", help="Drop and recreate the schema, then replay events")
    _add_ingest_arguments(rebuild_cmd)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = load_indexer_config(args.database_url)
    configure_logging(config)

    engine = create_store_engine(_sqlalchemy_url(config.database_url))
    try:
        if args.command == "init-db":
            if schema_exists(engine):
                print(json.dumps({"status": "schema exists"}, sort_keys=True))
                return 0
            upgrade_schema(engine)
            print(json.dumps({"status": "schema created"}, sort_keys=True))
            return 0

        if args.command == "rebuild" and schema_exists(engine):
            downgrade_schema(engine)
        if not schema_exists(engine):
            upgrade_schema(engine)
        report = _ingest(engine, config, args)
        print(json.dumps(report.as_dict(), sort_keys=True))
        return 0 if report.skipped == 0 else 2
    finally:
        engine.dispose()


if __name__ == "__main__":
    raise SystemExit(main())
