from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import Settings
from .models import Base


class Database:
    """Owns the process-wide engine and connection pool. Create once, dispose at shutdown."""

    def __init__(self, settings: Settings) -> None:
        engine_kwargs: dict[str, Any] = {
            "echo": settings.echo_sql,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }
        if settings.database_url.startswith("mysql"):
            engine_kwargs.update(
                pool_size=settings.pool_size,
                pool_timeout=settings.pool_timeout,
                connect_args={
                    "init_command": f"SET SESSION innodb_lock_wait_timeout = {settings.lock_wait_timeout}"
                },
            )
        self.engine: AsyncEngine = create_async_engine(settings.database_url, **engine_kwargs)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

    def session(self) -> AsyncSession:
        return self.sessionmaker()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
