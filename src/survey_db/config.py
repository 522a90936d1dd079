"""Database connection settings for the survey store.

The DSN comes from ``DATABASE_URL`` when set, otherwise it is assembled
from ``PG_HOST`` / ``PG_PORT`` / ``PG_USER`` / ``PG_PASSWORD`` /
``PG_DATABASE``.  The same DSN is handed out with two drivers:

    get_sync_url()   postgresql://...           Alembic (psycopg2)
    get_async_url()  postgresql+asyncpg://...   runtime engine

Pool and echo settings are read here as well so that ``engine`` has no
environment access of its own.
"""

import os

_SYNC_SCHEME = "postgresql://"
_ASYNC_SCHEME = "postgresql+asyncpg://"


def _dsn() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    return "{scheme}{user}:{password}@{host}:{port}/{database}".format(
        scheme=_SYNC_SCHEME,
        user=os.getenv("PG_USER", "survey"),
        password=os.getenv("PG_PASSWORD", "survey"),
        host=os.getenv("PG_HOST", "localhost"),
        port=os.getenv("PG_PORT", "5432"),
        database=os.getenv("PG_DATABASE", "survey"),
    )


def _with_scheme(url: str, scheme: str) -> str:
    for known in (_ASYNC_SCHEME, _SYNC_SCHEME):
        if url.startswith(known):
            return scheme + url[len(known):]
    # Some other dialect; leave it to SQLAlchemy
    return url


def get_sync_url() -> str:
    """DSN for the synchronous migration runner."""
    return _with_scheme(_dsn(), _SYNC_SCHEME)


def get_async_url() -> str:
    """DSN for the asyncpg engine used by the service."""
    return _with_scheme(_dsn(), _ASYNC_SCHEME)


def get_pool_options() -> dict:
    """Keyword arguments for ``create_async_engine``.

    Each in-flight submission holds one pooled connection for the length
    of its transaction, so ``PG_POOL_SIZE + PG_MAX_OVERFLOW`` bounds the
    number of concurrent submissions.
    """
    return {
        "pool_size": int(os.getenv("PG_POOL_SIZE", "10")),
        "max_overflow": int(os.getenv("PG_MAX_OVERFLOW", "20")),
        "pool_pre_ping": True,
        "echo": os.getenv("PG_ECHO", "").lower() in ("1", "true", "yes"),
    }
