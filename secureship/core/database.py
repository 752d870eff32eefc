"""SQL connection and session management for the database store backend."""

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from secureship.core.config import settings


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite needs cross-thread access for the FastAPI threadpool."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=echo,
        connect_args=connect_args,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to DATABASE_URL. Created on first use only."""
    engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
