from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from genstudio.core.config import Settings, get_settings
from genstudio.core.exceptions import (
    GenStudioException, ValidationError,
    genstudio_exception_handler, validation_exception_handler, general_exception_handler
)
from genstudio.core.http_client import ReplicateClient
from genstudio.core.logging import setup_logging
from genstudio.api.v1.api import api_router
from genstudio.services.generation.orchestrator import GenerationOrchestrator
from genstudio.services.generation.storage import MediaStorage


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Startup
    setup_logging(app.state.settings.LOG_LEVEL)
    app.state.orchestrator.storage.ensure_root()

    yield

    # Shutdown
    await app.state.orchestrator.client.aclose()


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the API with one provider client for the lifetime of the app."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Generative media studio backed by Replicate",
        version="1.0.0",
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan
    )

    client = ReplicateClient.from_settings(settings, transport=transport)
    storage = MediaStorage.from_settings(settings)
    app.state.settings = settings
    app.state.orchestrator = GenerationOrchestrator(client, storage, settings)

    # Exception handlers
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(GenStudioException, genstudio_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # CORS middleware
    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router, prefix=settings.API_V1_STR)
    app.mount(
        settings.MEDIA_URL_PREFIX,
        StaticFiles(directory=storage.root, check_dir=False),
        name="media",
    )

    @app.get("/")
    async def root():
        return {"message": f"{settings.PROJECT_NAME} is running"}

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "replicate_configured": settings.has_replicate_token,
        }

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("genstudio.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
