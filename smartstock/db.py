from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from smartstock.config import settings
from smartstock.errors import BackendUnavailable


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    url = settings.database_url_normalized
    if not url:
        raise BackendUnavailable('DATABASE_URL is required when SYNC_BACKEND=database')
    return create_engine(url, pool_pre_ping=True)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
