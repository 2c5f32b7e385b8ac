from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import Settings

Base = declarative_base()


def build_engine(settings: Settings) -> Engine:
    timeout = settings.storage_timeout_seconds
    if settings.database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
    elif settings.database_url.startswith("postgresql"):
        connect_args = {"options": f"-c statement_timeout={timeout * 1000} -c lock_timeout={timeout * 1000}"}
    else:
        connect_args = {}
    return create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
