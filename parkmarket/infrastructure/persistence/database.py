from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from loguru import logger

from parkmarket.config.settings_env import settings
from parkmarket.infrastructure.persistence.models.models import Base


def configure_sqlite_locking(engine: AsyncEngine) -> AsyncEngine:
    """Make every SQLite transaction take the write lock when it starts.

    pysqlite defers BEGIN until the first write, so an availability count
    would otherwise run outside the transaction that inserts the booking.
    ``BEGIN IMMEDIATE`` serializes writers the way ``SELECT ... FOR UPDATE``
    on the location row does on PostgreSQL.
    """
    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(url: str = None, **kwargs) -> AsyncEngine:
    url = url or settings.ASYNC_DATABASE_URL
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"timeout": settings.SQLITE_BUSY_TIMEOUT})
    engine = create_async_engine(url, echo=False, **kwargs)
    return configure_sqlite_locking(engine)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async_engine = build_engine()
AsyncSessionLocal = build_session_factory(async_engine)


async def get_async_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(engine: AsyncEngine = None):
    engine = engine or async_engine
    logger.info(f"Initializing database at: {engine.url}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created")
