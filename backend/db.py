from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine

from backend.settings import get_settings

ASYNCPG_SCHEME = "postgresql+asyncpg://"
POSTGRES_SCHEMES = ("postgres://", "postgresql://", "postgresql+psycopg2://")

# libpq options that asyncpg.connect() rejects as keyword arguments.
UNSUPPORTED_QUERY_KEYS = {"channel_binding", "target_session_attrs"}


def _normalize_database_url(database_url: str) -> str:
    """Point Postgres URLs at asyncpg and turn ``sslmode`` into the ``ssl`` argument it expects."""
    url = str(database_url or "").strip()
    for scheme in POSTGRES_SCHEMES:
        if url.startswith(scheme):
            url = ASYNCPG_SCHEME + url[len(scheme) :]
            break
    if not url.startswith(ASYNCPG_SCHEME):
        return url
    parsed = urlparse(url)
    query = []
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        if key in UNSUPPORTED_QUERY_KEYS:
            continue
        query.append(("ssl" if key == "sslmode" else key, value))
    return urlunparse(parsed._replace(query=urlencode(query)))


def build_engine(database_url: str) -> AsyncEngine:
    db_url = _normalize_database_url(database_url)
    if not db_url.startswith(ASYNCPG_SCHEME):
        return create_async_engine(db_url, future=True)
    return create_async_engine(db_url, pool_pre_ping=True, future=True, pool_size=20, max_overflow=10)


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
    return _engine


def get_sessionmaker() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory
