from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event, make_url
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SECONDS = 5.0


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


def _configure_sqlite_connection(dbapi_connection: Any, connection_record: object) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # SQLite lower() and LIKE only fold ASCII letters.
    dbapi_connection.create_function("casefold", 1, _casefold, deterministic=True)


def create_db_engine(database_url: str, *, echo: bool = False) -> Engine:
    connect_args: dict[str, object] = {}
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        # Sessions are opened from request worker threads.
        connect_args = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS}
    engine = create_engine(database_url, echo=echo, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _configure_sqlite_connection)
    Base.metadata.create_all(engine)
    return engine


def create_session_factory(database_url: str, *, echo: bool = False) -> sessionmaker[Session]:
    return sessionmaker(create_db_engine(database_url, echo=echo))


def init_db(echo: bool = False, *, db_file: str | Path, reset: bool = False) -> sessionmaker[Session]:
    path = Path(db_file)
    if reset and path.exists():
        logger.info("Removing existing database %s", path)
        path.unlink()

    return create_session_factory(f"sqlite:///{path}", echo=echo)
