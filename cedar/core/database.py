import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cedar.core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": settings.DB_ECHO_LOG, "future": True}
    # Pool sizing only applies to real server databases
    if not url.startswith("sqlite"):
        kwargs["pool_size"] = settings.DB_POOL_SIZE
        kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
    return kwargs


engine = create_async_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

logger.info("Async SQLAlchemy engine and session factory configured.")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides an async database session.

    Commits are not issued here: repositories own the transaction boundary of
    each operation so that multi-row writes stay all-or-nothing.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Error during DB session, rolling back: {e}", exc_info=True)
            await session.rollback()
            raise
        finally:
            await session.close()
            logger.debug("DB session closed.")


async def create_tables():
    """Creates every table registered on SQLModel.metadata."""
    from sqlmodel import SQLModel

    # Table modules must be imported so their metadata is registered
    import cedar.quotes.infrastructure.orm  # noqa: F401
    import cedar.orders.infrastructure.orm  # noqa: F401
    import cedar.checkout.infrastructure.orm  # noqa: F401
    import cedar.identity.infrastructure.orm  # noqa: F401
    import cedar.notifications.infrastructure.orm  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


DbSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
