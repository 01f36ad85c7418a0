from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from bugflow.core.config import settings
from bugflow.core.errors import BackendUnavailable

engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def _create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=settings.debug)


def _create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


def get_engine() -> AsyncEngine | None:
    """Cria o engine na primeira chamada; None quando o banco não está configurado."""
    global engine
    if engine is None and settings.database_configured:
        engine = _create_engine(str(settings.database_url))
    return engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global SessionLocal
    if not settings.database_configured:
        raise BackendUnavailable()
    if SessionLocal is None:
        SessionLocal = _create_session_factory(get_engine())
    return SessionLocal


async def dispose_engine() -> None:
    global engine, SessionLocal
    if engine is not None:
        await engine.dispose()
    engine = None
    SessionLocal = None
