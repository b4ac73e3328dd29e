"""
DB utilities (sqlite default, postgres supported).

Defaults:
- DATABASE_URL: sqlite:///./data/cellar.db
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", "sqlite:///./data/cellar.db")


def _repo_root() -> Path:
    # apps/api/cellar/core/db.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def resolve_sqlite_path(database_url: str) -> Optional[Path]:
    if not database_url.startswith("sqlite:///"):
        return None
    p = database_url[len("sqlite:///") :]

    # absolute unix
    if p.startswith("/"):
        return Path(p)

    # absolute windows drive, both C:/ and C:\ forms
    if len(p) >= 3 and p[1] == ":" and (p[2] == "/" or p[2] == "\\"):
        return Path(p)

    # relative -> repo root
    return (_repo_root() / p).resolve()


def _enable_sqlite_fk(dbapi_conn: Any, _record: Any) -> None:
    # cascades on wine_* / review_bullets depend on it
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


_engine: Optional[Engine] = None


def get_engine() -> Engine:
    global _engine
    if _engine is not None:
        return _engine

    url = get_database_url()
    connect_args = {}
    if url.startswith("sqlite:///"):
        connect_args = {"check_same_thread": False}

    sp = resolve_sqlite_path(url)
    if sp is not None:
        sp.parent.mkdir(parents=True, exist_ok=True)
        url = "sqlite:///" + sp.as_posix()

    _engine = create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)
    if _engine.dialect.name == "sqlite":
        event.listen(_engine, "connect", _enable_sqlite_fk)
    return _engine


def reset_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def init_db() -> None:
    """Create all tables known to SQLModel.metadata (dev / tests; prod uses alembic)."""
    from sqlmodel import SQLModel

    import cellar.modules.models  # noqa: F401  (registers tables)

    SQLModel.metadata.create_all(get_engine())


def db_health() -> Dict[str, Any]:
    url = get_database_url()
    kind = "sqlite" if url.startswith("sqlite") else url.split(":", 1)[0]
    sp = resolve_sqlite_path(url)
    path = str(sp.as_posix()) if sp is not None else None

    try:
        eng = get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "kind": kind, "path": path}
    except Exception as e:
        return {"status": "error", "kind": kind, "path": path, "error": str(e)}
