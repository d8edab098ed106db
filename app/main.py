import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from app.config import get_settings
from app.api.routes import emoji, reactions
from app.services.container import ServiceContainer, build_services

settings = get_settings()

# Configure application logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Set log level for app modules
logger = logging.getLogger("app")
logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the API app. Services are created once at startup unless supplied."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or build_services(settings)
        try:
            yield
        finally:
            await app.state.services.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Slack search companion: progressive reactions and emoji resolution",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Include routers
    app.include_router(reactions.router, prefix="/api/reactions", tags=["Reactions"])
    app.include_router(emoji.router, prefix="/api/emoji", tags=["Emoji"])

    @app.get("/")
    async def root():
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": "0.1.0",
            "endpoints": {
                "reactions": "/api/reactions",
                "emoji": "/api/emoji",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": settings.app_name}

    return app


app = create_app()
