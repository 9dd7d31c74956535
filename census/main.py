"""Android Census API - device census ingestion and reporting."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from census import __version__
from census.config import get_settings
from census.database import init_models
from census.routers import devices, health, lookups, results, stats

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.api_log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Android Census API...")
    await init_models()
    yield
    logger.info("Shutting down Android Census API...")


app = FastAPI(
    title="Android Census",
    description="Android device census ingestion and reporting",
    version=__version__,
    debug=settings.api_debug,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(results.router, prefix="/api/results", tags=["Results"])
app.include_router(devices.router, prefix="/api/devices", tags=["Devices"])
app.include_router(lookups.router, prefix="/api", tags=["Lookups"])
app.include_router(stats.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Android Census",
        "version": __version__,
        "description": "Android device census ingestion and reporting",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "census.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.api_log_level,
    )
