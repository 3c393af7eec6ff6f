"""Database connection management."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from data_agent.config import settings


def _build_connect_args(database_url: str) -> dict[str, Any]:
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return connect_args


def create_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine for the document database.

    Args:
        database_url: SQLAlchemy URL. Defaults to ``settings.database_url``.
        echo: Log SQL. Defaults to ``settings.database_echo``.
    """
    database_url = database_url or settings.database_url
    return create_async_engine(
        database_url,
        echo=settings.database_echo if echo is None else echo,
        connect_args=_build_connect_args(database_url),
    )


# Create async engine
engine = create_engine()

# Session factory
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Initialize database (create tables if needed)."""
    from data_agent.documents.models import Base  # noqa: PLC0415

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
