"""Database migration runner for deploys.

Runs `alembic upgrade head`. When the upgrade fails because the tables already exist
(created by `init_db` before Alembic tracked them), the schema is verified and
Alembic history is stamped to head instead.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import List, Tuple

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from blockplanner.database.database import DATABASE_URL, _is_sqlite_url, build_engine

logger = logging.getLogger(__name__)


def _alembic_cfg() -> Config:
    cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", DATABASE_URL)
    return cfg


def _required_schema_checks() -> List[Tuple[str, str]]:
    """Return (kind, name) checks required to safely stamp head."""
    return [
        ("table", "users"),
        ("table", "block_types"),
        ("table", "block_instances"),
        ("table", "calendar_events"),
        ("table", "user_preferences"),
        ("table", "notification_queue"),
        ("column:block_instances", "paused_until"),
        ("column:user_preferences", "timezone"),
        ("column:notification_queue", "sent_at"),
    ]


def missing_requirements(engine) -> List[str]:
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    missing: List[str] = []
    for kind, name in _required_schema_checks():
        if kind == "table":
            if name not in tables:
                missing.append(f"missing table: {name}")
        elif kind.startswith("column:"):
            table = kind.split(":", 1)[1]
            columns = {c["name"] for c in inspector.get_columns(table)} if table in tables else set()
            if name not in columns:
                missing.append(f"missing column: {table}.{name}")
        else:
            missing.append(f"unknown check: {kind} {name}")
    return missing


def main() -> int:
    if _is_sqlite_url(DATABASE_URL):
        command.upgrade(_alembic_cfg(), "head")
        return 0

    try:
        command.upgrade(_alembic_cfg(), "head")
        return 0
    except Exception as e:
        msg = str(e).lower()
        if not any(s in msg for s in ("duplicate", "already exists", "exists")):
            raise

        missing = missing_requirements(build_engine(DATABASE_URL))
        if missing:
            raise RuntimeError(
                "Alembic upgrade failed and schema is not at expected baseline; refusing to stamp head. "
                + "; ".join(missing)
            ) from e

        logger.warning("Schema already present; stamping Alembic head")
        command.stamp(_alembic_cfg(), "head")
        return 0


if __name__ == "__main__":
    sys.exit(main())
