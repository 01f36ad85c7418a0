import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bugflow.core.config import settings
from bugflow.db.session import dispose_engine, get_engine

logger = logging.getLogger("bugflow.lifespan")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    # Startup
    engine = get_engine()
    if engine is None:
        logger.warning("BUGFLOW_DATABASE_URL não configurada; rotas de dados responderão 500")
    else:
        try:
            async with engine.begin():
                logger.info("Database connection established")
        except Exception as exc:  # pragma: no cover - startup diagnostics
            logger.exception("Failed to connect to the database", exc_info=exc)
            raise

    if not settings.smtp_host:
        logger.info("SMTP não configurado; convites serão criados sem envio de email")

    try:
        yield
    finally:
        # Shutdown
        await dispose_engine()
        logger.info("Database connection closed")
