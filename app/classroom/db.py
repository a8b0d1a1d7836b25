"""
Record store handle.

`Store` owns the engine and session factory. It is built once by `init_db`
(or directly by scripts and tests) and handed to whoever needs sessions;
data-access functions only ever receive a `Session`.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from collections.abc import Generator
from dataclasses import dataclass

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

STORE_EXTENSION = "classroom_store"


@dataclass(frozen=True)
class Store:
    engine: Engine
    sessions: sessionmaker

    @classmethod
    def from_url(cls, db_url: str, *, log_checkouts: bool = False) -> "Store":
        engine_kwargs: dict[str, object] = {"future": True, "pool_pre_ping": True}
        if db_url.startswith("postgres"):
            engine_kwargs.update({"pool_recycle": 1800, "pool_size": 5, "max_overflow": 10, "pool_timeout": 30})
        engine = create_engine(db_url, **engine_kwargs)
        if log_checkouts:
            @event.listens_for(engine, "checkout")
            def _receive_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
                logger.debug("DB connection checkout from pool")

        sessions = sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False, future=True)
        return cls(engine=engine, sessions=sessions)

    def session(self) -> Session:
        return self.sessions()

    @contextmanager
    def scope(self) -> Generator[Session, None, None]:
        """Yield a session; commit on success, roll back on error."""
        s = self.session()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    def dispose(self) -> None:
        self.engine.dispose()


def init_db(app: Flask) -> Store:
    store = Store.from_url(app.config["DATABASE_URL"], log_checkouts=app.config.get("ENV") != "production")
    app.extensions[STORE_EXTENSION] = store
    app.extensions["sqlalchemy_engine"] = store.engine
    app.logger.info("Record store configured (%s)", store.engine.url.render_as_string(hide_password=True))
    return store


def get_store(app: Flask) -> Store:
    return app.extensions[STORE_EXTENSION]


def db_session() -> Session:
    """Session for the current request, opened on first use and closed at teardown."""
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        s = get_store(current_app).session()
        g.db_session = s
    return s


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is not None:
        s.close()


def session_scope(app: Flask):
    """Script/test helper: `with session_scope(app) as s:` commits on exit."""
    return get_store(app).scope()
