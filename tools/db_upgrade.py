#!/usr/bin/env python3
"""Run Alembic migrations up to head."""

from __future__ import annotations

import argparse
from pathlib import Path

from alembic.config import Config

from alembic import command

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def build_config(database_url: str | None = None) -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    if database_url:
        # ConfigParser interpolation treats % specially
        cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return cfg


def upgrade_head(database_url: str | None = None) -> None:
    command.upgrade(build_config(database_url), "head")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy URL to migrate (defaults to DATABASE_URL)",
    )
    args = parser.parse_args(argv)
    upgrade_head(args.database_url)


if __name__ == "__main__":
    main()
