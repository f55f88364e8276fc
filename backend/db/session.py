"""Engine and session construction for the entity store."""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import Any

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.db.base import Base

logger = logging.getLogger(__name__)

INITIAL_REVISION_PATH = Path(__file__).resolve().parent / "migrations" / "versions" / "0001_initial_schema.py"


def _enable_sqlite_savepoints(engine: Engine) -> None:
    # pysqlite emits its own BEGIN lazily, which breaks SAVEPOINT scoping.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_store_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for the entity store; SQLite URLs get savepoint support."""
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_engine(url, echo=echo, **kwargs)
        _enable_sqlite_savepoints(engine)
        return engine
    return create_engine(url, echo=echo)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Return a session factory that keeps loaded entities usable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create every entity table that does not exist yet."""
    logger.info("Creating entity store schema.")
    Base.metadata.create_all(engine)


def schema_exists(engine: Engine) -> bool:
    return inspect(engine).has_table("account")


def _load_revision(path: Path = INITIAL_REVISION_PATH) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"entity_store_revision_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Cannot load migration revision {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _run_revision(engine: Engine, direction: str) -> None:
    revision = _load_revision()
    with engine.begin() as connection:
        migration_context = MigrationContext.configure(connection)
        with Operations.context(migration_context):
            getattr(revision, direction)()


def upgrade_schema(engine: Engine) -> None:
    """Apply the initial revision, including the PostgreSQL append-only triggers."""
    logger.info("Upgrading entity store schema.")
    _run_revision(engine, "upgrade")


def downgrade_schema(engine: Engine) -> None:
    """Revert the initial revision, dropping triggers and every entity table."""
    logger.info("Downgrading entity store schema.")
    _run_revision(engine, "downgrade")
