"""Async database engine and session factory (SQLite locally, PostgreSQL in production)."""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings


def enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """Give every SQLite session a real transaction, savepoints included.

    The sqlite3 driver only emits BEGIN ahead of DML, so a leading SAVEPOINT
    would open the transaction itself and its RELEASE would commit it.
    WAL lets readers and the webhook writer work side by side.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_async_engine(settings.database_url, echo=settings.echo_sql)
if engine.dialect.name == "sqlite":
    enable_sqlite_transactions(engine)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency that yields an async session."""
    async with async_session_factory() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency for work that outlives the request session (background tasks)."""
    return async_session_factory
