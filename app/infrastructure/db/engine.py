from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


@lru_cache(maxsize=4)
def get_engine(dsn: str) -> Engine:
    return create_engine(dsn, future=True, pool_pre_ping=True)


def create_schema(engine: Engine) -> None:
    # Registers the table on Base.metadata before create_all.
    from app.infrastructure.db.models import users  # noqa: F401

    Base.metadata.create_all(engine)
