'''
Async engine, session factory and the per-request session dependency.
The engine is built and disposed by the app lifespan; nothing connects at import time.
'''
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator, Any
from ..common.config import settings
from ..common.logger import log
from .models import Base

engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None

def _engine_options(url: str) -> dict[str, Any]:
    """Pool settings per backend. An in-memory sqlite database lives on one shared connection."""
    if url.startswith("sqlite"):
        if ":memory:" in url or url.endswith("://"):
            return dict(poolclass=StaticPool, connect_args={"check_same_thread": False})
        return {}
    return dict(
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=-1,
        pool_pre_ping=True
    )

def create_db_engine_and_session_factory():
    """Called once on startup."""
    global engine, AsyncSessionLocal

    url = settings.database_url
    log.info(f"Creating database engine ({url.split('://', 1)[0]}).")
    try:
        engine = create_async_engine(url, echo=False, **_engine_options(url))
        AsyncSessionLocal = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except Exception as e:
        log.critical(f"Failed to create async database engine: {e}", exc_info=True)
        raise

async def create_tables():
    """Creates missing tables. Postgres deployments manage the schema themselves."""
    if engine is None:
        raise RuntimeError("Database engine is not initialized.")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Database tables ensured.")

async def dispose_db_engine():
    global engine, AsyncSessionLocal
    if engine:
        await engine.dispose()
        log.info("Database engine disposed.")
    engine = None
    AsyncSessionLocal = None

async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session, and one transaction, per request.
    Committed when the route returns; rolled back on any exception
    (HTTPException included), so a rejected roster or membership edit
    leaves nothing half-written.
    """
    if AsyncSessionLocal is None:
        log.error("Session requested before the app lifespan created the engine.")
        raise RuntimeError("Database session factory is not available.")

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            log.warning(f"Request transaction rolled back: {e!r}")
            raise
