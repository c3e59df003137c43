"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gameplug.config import get_settings
from gameplug.database import close_db, create_all, get_session, init_db
from gameplug.health.router import router as health_router
from gameplug.loyalty.admin_router import router as loyalty_admin_router
from gameplug.loyalty.router import router as loyalty_router
from gameplug.loyalty.seed import seed_defaults
from gameplug.middleware import setup_middleware
from gameplug.notifications.router import router as notifications_router
from gameplug.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    try:
        await create_all()
        async for db in get_session():
            await seed_defaults(db)
            break
    except Exception:
        logger.warning("Schema setup or default seeding failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Game Plug Loyalty API",
        description="Points, tiers, quests, rewards and loot packs for the Game Plug store",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(loyalty_router)
    app.include_router(loyalty_admin_router)
    app.include_router(notifications_router)

    return app


app = create_app()
