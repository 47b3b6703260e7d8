# pickboard/core/db.py
import logging
from typing import Any, Dict, List
from urllib.parse import urlparse, urlunparse, parse_qsl, urlencode

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy import text

logger = logging.getLogger("pickboard.db")


def _ensure_asyncpg(url: str) -> str:
    """
    Normalize any postgres URL to asyncpg.
    Works for:
      - postgres://...
      - postgresql://...
      - postgresql+psycopg2://...
    asyncpg takes `ssl`, not libpq's `sslmode`; a sslmode=require in the URL is
    translated, anything else defaults to ssl=require.
    """
    if not url:
        return url

    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql+psycopg2://"):
        url = "postgresql://" + url[len("postgresql+psycopg2://"):]
    if not url.startswith("postgresql+asyncpg://"):
        url = "postgresql+asyncpg://" + url.split("postgresql://", 1)[-1]

    parsed = urlparse(url)
    q = dict(parse_qsl(parsed.query))
    sslmode = q.pop("sslmode", None)
    if "ssl" not in q:
        q["ssl"] = sslmode or "require"
    final_url = urlunparse(parsed._replace(query=urlencode(q)))

    # no secrets in the log line
    logger.info("DB using asyncpg host=%s port=%s ssl=%s", parsed.hostname or "?", parsed.port or "?", q["ssl"])
    return final_url


def init_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(_ensure_asyncpg(database_url), pool_pre_ping=True)


async def exec_sql(engine: AsyncEngine, sql: str, params: Dict[str, Any] | None = None) -> None:
    async with engine.begin() as conn:
        await conn.execute(text(sql), params or {})


async def fetch_all(engine: AsyncEngine, sql: str, params: Dict[str, Any] | None = None) -> List[Dict[str, Any]]:
    async with engine.begin() as conn:
        res = await conn.execute(text(sql), params or {})
        return [dict(r) for r in res.mappings().all()]


async def fetch_one(engine: AsyncEngine, sql: str, params: Dict[str, Any] | None = None) -> Dict[str, Any] | None:
    rows = await fetch_all(engine, sql, params)
    return rows[0] if rows else None
