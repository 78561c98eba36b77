"""SQLAlchemy engine and session helpers.

The ``Storage`` handle owns the engine (and therefore the connection pool) and
the session factory. ``create_app`` builds one per application and parks it on
``app.state`` so request handlers receive it through ``get_db`` instead of a
module-level global.
"""

from __future__ import annotations

from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Storage:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    @classmethod
    def from_url(cls, url: str | URL, *, pool_size: int = 10) -> "Storage":
        parsed = make_url(url)
        kwargs: dict[str, object] = {}
        if parsed.get_backend_name() == "sqlite":
            # SQLite connections are shared by FastAPI worker threads.
            kwargs["connect_args"] = {"check_same_thread": False}
            if parsed.database in (None, "", ":memory:"):
                # One connection keeps a memory database alive across sessions.
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_size"] = pool_size
            kwargs["pool_pre_ping"] = True
        return cls(create_engine(parsed, **kwargs))

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = request.app.state.storage.session()
    try:
        yield db
    finally:
        db.close()
