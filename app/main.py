from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from app.core.config import Settings, settings
from app.core.context import AppContext
from app.routers import auth, earnings, health, views

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(config: Settings = settings, context: Optional[AppContext] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: build the store, identity and rate clients
        app.state.context = context or AppContext.from_settings(config)
        yield
        # Shutdown: release them
        app.state.context.close()

    app = FastAPI(
        title=config.PROJECT_NAME,
        debug=config.DEBUG,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    # Register routers
    app.include_router(views.router, tags=["Views"])  # /, /dashboard, /month/{n}
    app.include_router(health.router, prefix=f"{config.API_PREFIX}", tags=["Health"])  # /api/health
    app.include_router(auth.router, prefix=f"{config.API_PREFIX}/auth", tags=["Auth"])
    app.include_router(earnings.router, prefix=f"{config.API_PREFIX}/earnings", tags=["Earnings"])
    return app


configure_logging(settings.LOG_LEVEL)
app = create_app()
