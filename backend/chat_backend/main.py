"""FastAPI entry point for the chat backend."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_backend.config import get_settings
from chat_backend.infrastructure.database import Base, engine
from chat_backend.infrastructure.database.session import ensure_database_exists
from chat_backend.infrastructure.dependencies import close_http_client, get_http_client
from chat_backend.infrastructure.logging.log_config import setup_logging
from chat_backend.presentation.api.router import router as api_router
from chat_backend.presentation.api.v1.endpoints.chat import TRACE_HEADER

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Prepare storage and the shared HTTP pool; release both on shutdown."""
    setup_logging()
    settings = get_settings()

    await ensure_database_exists(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    get_http_client()
    logger.info("%s %s ready (env=%s)", settings.app_title, settings.app_version, settings.app_env)
    try:
        yield
    finally:
        await close_http_client()
        await engine.dispose()


def create_app() -> FastAPI:
    settings = get_settings()
    application = FastAPI(title=settings.app_title, version=settings.app_version, lifespan=lifespan)

    # Browsers only see the trace id when it is exposed explicitly.
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[TRACE_HEADER],
    )
    application.include_router(api_router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("chat_backend.main:app", host="0.0.0.0", port=8020, reload=True)
