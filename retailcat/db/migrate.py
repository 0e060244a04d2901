"""Apply schema.sql to the catalog database.

The schema is written for PostgreSQL; for SQLite (local runs and tests) the
few Postgres-only column types are rewritten before execution.
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import re
import sys
from typing import Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from retailcat.db.session import create_engine_from_env

logger = logging.getLogger(__name__)

SCHEMA_PATH = pathlib.Path(__file__).with_name("schema.sql")
STATEMENT_END = re.compile(r";[ \t]*$", re.MULTILINE)

SQLITE_REWRITES = (
    ("SERIAL PRIMARY KEY", "INTEGER PRIMARY KEY AUTOINCREMENT"),
    ("JSONB", "JSON"),
    ("TIMESTAMPTZ", "TIMESTAMP"),
    ("NOW()", "CURRENT_TIMESTAMP"),
)


def run_migrations(engine: Engine, schema: str | None = None) -> int:
    """Execute every statement of ``schema`` (default: schema.sql); returns the count."""
    sql = schema if schema is not None else SCHEMA_PATH.read_text()
    count = 0
    with engine.begin() as conn:
        for stmt in split_statements(sql):
            conn.execute(text(_for_dialect(stmt, engine.dialect.name)))
            count += 1
    logger.info("Applied %s schema statements on %s", count, engine.dialect.name)
    return count


def _for_dialect(stmt: str, dialect: str) -> str:
    if dialect != "sqlite":
        return stmt
    for old, new in SQLITE_REWRITES:
        stmt = stmt.replace(old, new)
    return stmt


def split_statements(sql: str) -> list[str]:
    """Split ``sql`` on statement-ending semicolons, dropping ``--`` comment lines."""
    body = "\n".join(line for line in sql.splitlines() if not line.strip().startswith("--"))
    return [f"{chunk.strip()};" for chunk in STATEMENT_END.split(body) if chunk.strip()]


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="retailcat-migrate", description="Apply schema.sql to DATABASE_URL")
    parser.add_argument("--print", dest="print_only", action="store_true", help="print the statements instead")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    try:
        engine = create_engine_from_env()
    except KeyError as exc:
        logger.error("Missing environment variable: %s", exc)
        return 1
    if args.print_only:
        for stmt in split_statements(SCHEMA_PATH.read_text()):
            print(_for_dialect(stmt, engine.dialect.name), end="\n\n")
        return 0
    try:
        run_migrations(engine)
    except SQLAlchemyError as exc:
        logger.error("Migration failed: %s", exc)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
