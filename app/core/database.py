from typing import Any, AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession, AsyncAttrs
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings
from app.core.logger import logger


def configure_sqlite(engine: AsyncEngine) -> None:
    """
    Перевод соединений SQLite на явное управление транзакциями.

    Неявный BEGIN драйвера отключается, каждая транзакция открывается через
    BEGIN IMMEDIATE, и конкурентные записи встают в очередь за блокировкой
    записи вместо взаимной блокировки при ее повышении.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        new_engine = create_async_engine(url=url, echo=False)
        configure_sqlite(new_engine)
        return new_engine

    return create_async_engine(
        url=url,
        echo=False,
        pool_size=5,
        max_overflow=10,
    )


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

class Base(AsyncAttrs, DeclarativeBase):
    pass

async def get_db() -> AsyncGenerator[AsyncSession | Any, Any]:
    async with AsyncSessionLocal() as session:
        logger.debug("Database session opened")
        try:
            yield session
        finally:
            logger.debug("Database session closed")
