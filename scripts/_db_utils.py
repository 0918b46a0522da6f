from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def create_script_engine(db_url: str) -> Engine:
    # sqlite (local runs, tests) has no server-side idle timeout to dodge
    extra = {"pool_recycle": 1800} if db_url.startswith("postgres") else {}
    return create_engine(db_url, future=True, pool_pre_ping=True, **extra)


@contextmanager
def script_session(db_url: str) -> Iterator[Session]:
    """Commit-on-success session on a throwaway engine, for scripts that run without the Flask app."""
    engine = create_script_engine(db_url)
    s = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
