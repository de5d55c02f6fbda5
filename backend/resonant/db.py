from __future__ import annotations

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from resonant.core.config import settings


def _build_engine():
    connect_args = {}
    kwargs = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        # In-memory databases live inside a single connection
        if ":memory:" in settings.DATABASE_URL:
            kwargs["poolclass"] = StaticPool
    return create_engine(settings.DATABASE_URL, connect_args=connect_args, **kwargs)


engine = _build_engine()


def init_db() -> None:
    """Create database tables in environments without migrations."""
    import resonant.models  # noqa: F401  registers tables on the metadata

    SQLModel.metadata.create_all(bind=engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
