"""Engine and session factory for the matcher run audit database"""

from typing import Any, Dict, Iterator
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from attribution_gateway.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pooling for server databases; sqlite only needs cross-thread access"""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    # Audit writes are rare; a small pool is enough
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 5,
        "pool_recycle": 1800,
    }


engine = create_engine(settings.database_url, **engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Request-scoped session; endpoints own the commit"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
