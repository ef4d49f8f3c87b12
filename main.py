"""
User service — application entry point.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_exception_handlers, register_middleware
from api.routes import router as users_router
from auth.jwt import init_token_signing, reset_token_signing
from auth.password import dummy_hash
from auth.routes import router as auth_router
from config.settings import config
from database.session import dispose_engine, init_db

_LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"


def configure_logging(log_file: str | None = None) -> logging.Handler | None:
    """
    Log to stdout, and also to *log_file* when one is configured.

    Returns the file handler, if any, so callers can detach it.
    """
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format=_LOG_FORMAT,
        stream=sys.stdout,
    )
    for _noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)

    if not log_file:
        return None
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler


configure_logging(config.log_file)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_token_signing()
    await init_db()
    await asyncio.to_thread(dummy_hash)
    logger.info("Application ready to accept requests.")
    try:
        yield
    finally:
        reset_token_signing()
        await dispose_engine()
        logger.info("Application shut down.")


def create_app() -> FastAPI:
    app = FastAPI(
        title="User Service",
        version="1.0.0",
        description="User registration, login and CRUD.",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes: auth first so /users/login and /users/protected win over /users/{id}
    app.include_router(auth_router, prefix="/users")
    app.include_router(users_router, prefix="/users")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
