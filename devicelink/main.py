"""
devicelink - device connectivity and discovery server

The main FastAPI application entry point.
"""

# Load .env file FIRST, before any other imports
from pathlib import Path
from dotenv import load_dotenv
_env_root = Path(__file__).parent.parent
load_dotenv(_env_root / ".env")

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import router as api_router
from .config import settings
from .connectivity.service import get_connectivity_service, set_connectivity_service

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("devicelink.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Builds the connectivity service on startup and drops it on shutdown.
    """
    # --- Startup ---
    logger.info("devicelink starting up...")
    get_connectivity_service()
    logger.info(
        "Connectivity ready (http port %d, native port %d)",
        settings.connectivity.http_port,
        settings.connectivity.native_port,
    )

    yield

    # --- Shutdown ---
    set_connectivity_service(None)
    logger.info("devicelink shutdown complete")


# Create the FastAPI application
app = FastAPI(
    title="devicelink",
    description="Connectivity, discovery and control for local network devices.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_router, prefix=settings.api_prefix)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "devicelink.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
