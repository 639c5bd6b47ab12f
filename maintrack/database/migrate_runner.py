"""One-off migration runner for deploys.

Runs `alembic upgrade head`. If the upgrade fails because the tables already
exist (schema created by `create_all` before Alembic tracked it), the runner
verifies the expected tables and columns are present and stamps head instead.

Usage: python -m maintrack.database.migrate_runner
"""

import logging
import os
import sys
from typing import List, Tuple

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from maintrack.database.database import DATABASE_URL, _is_sqlite_url, build_engine
from maintrack.logging_setup import setup_logging

logger = logging.getLogger(__name__)

ALREADY_APPLIED_MARKERS = ("already exists", "duplicate")


def _alembic_cfg() -> Config:
    cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", DATABASE_URL)
    return cfg


def _required_schema_checks() -> List[Tuple[str, str]]:
    """(table, column) pairs the runtime depends on; column None means the table itself."""
    return [
        ("users", None),
        ("users", "password_hash"),
        ("products", None),
        ("products", "task_ids"),
        ("products", "notification_preferences"),
        ("tasks", None),
        ("tasks", "is_recurring"),
        ("tasks", "next_maintenance"),
        ("tasks", "window_start_date"),
        ("tasks", "window_end_date"),
        ("action_logs", None),
    ]


def _missing_requirements(inspector) -> List[str]:
    tables = set(inspector.get_table_names())
    columns = {}
    missing: List[str] = []
    for table, column in _required_schema_checks():
        if table not in tables:
            if column is None:
                missing.append(f"missing table: {table}")
            continue
        if column is None:
            continue
        if table not in columns:
            columns[table] = {c["name"] for c in inspector.get_columns(table)}
        if column not in columns[table]:
            missing.append(f"missing column: {table}.{column}")
    return missing


def _looks_already_applied(error: Exception) -> bool:
    msg = str(error).lower()
    return any(marker in msg for marker in ALREADY_APPLIED_MARKERS)


def main() -> int:
    setup_logging()
    cfg = _alembic_cfg()
    try:
        command.upgrade(cfg, "head")
        logger.info("Alembic upgrade to head complete")
        return 0
    except Exception as e:
        if _is_sqlite_url(DATABASE_URL) or not _looks_already_applied(e):
            raise
        engine = build_engine(DATABASE_URL)
        missing = _missing_requirements(inspect(engine))
        if missing:
            raise RuntimeError(
                "Alembic upgrade failed and schema is not at expected baseline; refusing to stamp head. "
                + "; ".join(missing)
            ) from e
        logger.warning("Schema already present; stamping Alembic head")
        command.stamp(cfg, "head")
        return 0


if __name__ == "__main__":
    sys.exit(main())
