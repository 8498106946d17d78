import logging

# Log configuration (before other imports)
# ruff: noqa: E402
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)

from contextlib import asynccontextmanager  # noqa: E402
from typing import AsyncGenerator, Optional  # noqa: E402

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from vesper import __version__  # noqa: E402
from vesper.api.base import api_router  # noqa: E402
from vesper.config import Settings  # noqa: E402
from vesper.db.migrate import ensure_data_dir, migrate_up  # noqa: E402
from vesper.db.session import create_engine_from_settings, log_pool_stats  # noqa: E402
from vesper.features.tasks.repository import TaskStore  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Own the storage handle for the life of the application.

    The engine and the task store are built once here, exposed through
    app.state to request dependencies and disposed on shutdown.
    """
    settings: Settings = app.state.settings
    ensure_data_dir(settings)

    engine = create_engine_from_settings(settings)
    store = TaskStore(engine, default_timeout=settings.store_timeout_seconds)
    try:
        if settings.auto_migrate:
            await migrate_up(engine)

        app.state.engine = engine
        app.state.task_store = store

        total = await store.count()
        logger.info(f"Task store ready total={total}")
        log_pool_stats(engine, "startup")

        yield
    finally:
        logger.info("Shutting down task store...")
        await store.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application for the given (or environment) settings"""
    settings = settings or Settings.from_env()
    logging.getLogger().setLevel(settings.log_level)

    app = FastAPI(
        title="Vesper API",
        description="Task scheduling backend with overlap-safe task storage",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token", "X-User-ID"],
        expose_headers=["Link"],
        max_age=300,
    )

    # Include all API routes
    app.include_router(api_router)

    @app.get("/")
    def read_root():
        return {
            "message": "Vesper API",
            "docs": "/docs",
            "version": __version__,
        }

    return app


app = create_app()
