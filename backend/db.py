from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DB_URL

Base = declarative_base()


def build_engine(url: str = DB_URL):
    if url in ("sqlite://", "sqlite:///:memory:"):
        # a single shared connection, otherwise every checkout sees an empty db
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


engine = build_engine(DB_URL)
SessionLocal = sessionmaker(autoflush=False, bind=engine)


def init_db(bind=None):
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
