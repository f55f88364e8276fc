"""Initial entity store schema for the event indexer."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from alembic import op

from backend.db.base import Base
from backend.db.models import APPEND_ONLY_TABLES

logger = logging.getLogger(__name__)

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


APPEND_ONLY_FUNCTION_DDL = """
    CREATE OR REPLACE FUNCTION fn_enforce_append_only()
    RETURNS trigger
    LANGUAGE plpgsql
    AS $$
    BEGIN
        RAISE EXCEPTION 'append-only violation on table %, operation % is not allowed', TG_TABLE_NAME, TG_OP;
    END;
    $$;
    """


def append_only_ddl(tables: Sequence[str] = APPEND_ONLY_TABLES) -> tuple[str, ...]:
    """Trigger DDL rejecting UPDATE and DELETE on snapshot and log tables."""
    statements = [APPEND_ONLY_FUNCTION_DDL]
    for table in tables:
        statements.append(
            f"""
    CREATE TRIGGER trg_{table}_append_only
    BEFORE UPDATE OR DELETE ON {table}
    FOR EACH ROW EXECUTE FUNCTION fn_enforce_append_only();
    """
        )
    return tuple(statements)


def drop_append_only_ddl(tables: Sequence[str] = APPEND_ONLY_TABLES) -> tuple[str, ...]:
    statements = [f"DROP TRIGGER IF EXISTS trg_{table}_append_only ON {table};" for table in reversed(tables)]
    statements.append("DROP FUNCTION IF EXISTS fn_enforce_append_only();")
    return tuple(statements)


def _execute_all(statements: Sequence[str]) -> None:
    """Execute an ordered sequence of SQL statements."""

    for statement in statements:
        try:
            op.execute(statement)
        except Exception:
            logger.exception("Migration statement failed.")
            raise


def upgrade() -> None:
    """Apply the initial schema migration."""

    logger.info("Starting initial schema migration upgrade.")
    bind = op.get_bind()
    Base.metadata.create_all(bind)
    if bind.dialect.name == "postgresql":
        _execute_all(append_only_ddl())
    logger.info("Completed initial schema migration upgrade.")


def downgrade() -> None:
    """Revert the initial schema migration."""

    logger.info("Starting initial schema migration downgrade.")
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        _execute_all(drop_append_only_ddl())
    Base.metadata.drop_all(bind)
    logger.info("Completed initial schema migration downgrade.")
