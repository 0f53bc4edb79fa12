import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from modelhub.core.config import settings
from modelhub.core.database import init_db
from modelhub.core.logging import configure_logging
from modelhub.api.errors import register_error_handlers
from modelhub.api.routes import assets, profiles

import json

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=(
        json.loads(settings.CORS_ORIGINS)
        if isinstance(settings.CORS_ORIGINS, str) and settings.CORS_ORIGINS.strip().startswith("[")
        else [
            o.strip()
            for o in (settings.CORS_ORIGINS or "").split(",")
            if o.strip()
        ]
    ),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Id"],
)

register_error_handlers(app)

app.include_router(assets.router)
app.include_router(profiles.router)


@app.get("/")
async def root():
    return {
        "message": "Welcome to ModelHub API",
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "modelhub.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
