import functools

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from basecore.settings import get_settings


@functools.lru_cache()
def get_engine(url: str | None = None) -> Engine | None:
    """
    Get SQLAlchemy engine for the desk database (cached).

    This function lazily initializes the engine to avoid import-time side effects.
    Returns None when no desk database is configured.
    """
    url = url or get_settings().desk_database_url
    if not url:
        return None
    return create_engine(url, pool_pre_ping=True, echo=False)
