"""FastAPI dependencies."""

from typing import List

from fastapi import HTTPException, Request, status

from shelfscan.ingest.base import ScrapeTarget
from shelfscan.ingest.fleet import FleetRunner
from shelfscan.ingest.target_orchestrator import TargetOrchestrator
from shelfscan.ingest.targets import build_targets


def get_fleet_runner(request: Request) -> FleetRunner:
    """Dependency for the app-wide fleet runner created at startup."""
    runner = getattr(request.app.state, "fleet_runner", None)
    if runner is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scraper not initialized",
        )
    return runner


def get_orchestrator(request: Request) -> TargetOrchestrator:
    """Dependency for single-target scrapes."""
    return get_fleet_runner(request).orchestrator


def get_targets() -> List[ScrapeTarget]:
    """Dependency for the static target catalog."""
    return build_targets()
