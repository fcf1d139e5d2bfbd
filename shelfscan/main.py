"""FastAPI application and uvicorn entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from shelfscan.api.routes import products
from shelfscan.config import settings
from shelfscan.ingest.fetchers.headless import PlaywrightSurfaceFactory
from shelfscan.ingest.fleet import FleetRunner
from shelfscan.ingest.target_orchestrator import TargetOrchestrator
from shelfscan.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the headless browser for the lifetime of the app."""
    limit = settings.max_concurrent_targets or "unlimited"
    logger.info(f"Starting Shelf Scan (concurrent targets: {limit})")

    surface_factory = PlaywrightSurfaceFactory(headless=settings.headless)
    orchestrator = TargetOrchestrator(settings, surface_factory.open)
    app.state.fleet_runner = FleetRunner(settings, orchestrator)

    try:
        yield
    finally:
        logger.info("Stopping headless browser...")
        try:
            await surface_factory.close()
        except Exception:
            logger.exception("Error closing headless browser")
        app.state.fleet_runner = None


app = FastAPI(
    title="Shelf Scan",
    description="Scrape infinite-scroll and load-more product listings across retailers",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health"],
).instrument(app).expose(app, include_in_schema=True, tags=["monitoring"])

app.include_router(products.router)


@app.get("/health")
async def health(request: Request):
    """Liveness plus whether the scraper has been wired up."""
    ready = getattr(request.app.state, "fleet_runner", None) is not None
    return {"status": "healthy", "scraper_ready": ready}


def run():
    """Console entry point."""
    uvicorn.run(
        "shelfscan.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
