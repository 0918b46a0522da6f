"""
Run before each deploy: apply Alembic migrations, then make sure the platform
super admin exists.

    python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _database_url() -> str:
    url = (os.environ.get("DATABASE_URL") or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set; refusing to migrate a default sqlite file.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL points at sqlite while ENV=production. Use Postgres.")
    return url


def migrate(db_url: str, revision: str = "head") -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, revision)


def run_release() -> None:
    db_url = _database_url()
    print(f"[release] migrating to head (ENV={os.environ.get('ENV') or 'unset'})", flush=True)
    migrate(db_url)

    from scripts import init_db

    init_db.seed_only(database_url=db_url)
    print("[release] super admin present; release finished", flush=True)


if __name__ == "__main__":
    run_release()
