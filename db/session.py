# db/session.py
from __future__ import annotations

import logging
import os
import ssl as _ssl
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from common.config_loader import load_env_files

_log = logging.getLogger("voice-booking")

# Load secrets if present (won't override variables already set by the platform)
load_env_files()

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./voice_booking.db"
DATABASE_URL = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def _ssl_arg() -> Any:
    sslmode = os.getenv("DB_SSLMODE", "disable").lower()
    if sslmode in ("disable", "off", "false", "0"):
        return None
    if sslmode == "require":
        return "require"
    if sslmode in ("verify-ca", "verify-full"):
        ctx = _ssl.create_default_context(cafile=os.getenv("DB_SSLROOTCERT"))
        ctx.check_hostname = sslmode == "verify-full"
        return ctx
    return None


def make_engine(url: Optional[str] = None) -> AsyncEngine:
    url = url or DATABASE_URL
    backend = make_url(url).get_backend_name()
    kwargs: Dict[str, Any] = {"echo": bool(os.getenv("SQL_ECHO"))}
    if backend == "postgresql":
        kwargs.update(pool_pre_ping=True, poolclass=NullPool)
        ssl_arg = _ssl_arg()
        if ssl_arg is not None:
            kwargs["connect_args"] = {"ssl": ssl_arg}
    _log.info("Database backend: %s", backend)
    return create_async_engine(url, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, expire_on_commit=False, class_=AsyncSession)


engine = make_engine()
Session = make_session_factory(engine)


async def ping(bind: Optional[AsyncEngine] = None) -> bool:
    """Optional: simple connectivity check you can call at startup."""
    try:
        async with (bind or engine).connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
