from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings
from . import models

engine = None
SessionLocal = None


def build_engine(url: str, *, echo: bool = False) -> Engine:
    connect_args = {}
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=echo, future=True, connect_args=connect_args)


def init_engine(settings: Settings) -> None:
    global engine, SessionLocal
    if engine is None:
        engine = build_engine(settings.storage.database_url, echo=settings.storage.echo)
        models.Base.metadata.create_all(engine)
        SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@contextmanager
def get_session(settings: Settings) -> Iterator[Session]:
    if SessionLocal is None:
        init_engine(settings)
    session = SessionLocal()  # type: ignore[misc]
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
