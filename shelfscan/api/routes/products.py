"""Product scraping routes."""

import base64
import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from shelfscan.api.deps import get_fleet_runner, get_orchestrator, get_targets
from shelfscan.ingest.base import ProductRecord, RenderSurface, ScrapeTarget
from shelfscan.ingest.fleet import FleetRunner
from shelfscan.ingest.target_orchestrator import TargetOrchestrator, TargetOutcome
from shelfscan.ingest.targets import CATEGORIES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


class ProductResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    company: str
    title: str
    price: str
    image: Optional[str] = None
    product_url: Optional[str] = Field(default=None, alias="productUrl")
    scraped_at: datetime = Field(alias="scrapedAt")

    @classmethod
    def from_record(cls, record: ProductRecord) -> "ProductResponse":
        return cls(
            id=record.sequence_id,
            company=record.brand,
            title=record.title,
            price=record.price,
            image=record.image_url,
            product_url=record.product_url,
            scraped_at=record.captured_at,
        )


class ProductsData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phones: List[ProductResponse] = []
    laptops: List[ProductResponse] = []
    gpus: List[ProductResponse] = Field(default_factory=list, alias="GPUs")


class TargetOutcomeResponse(BaseModel):
    target: str
    url: str
    success: bool
    record_count: int
    reason: Optional[str] = None
    duration_seconds: float
    pattern: Optional[str] = None
    converged: Optional[bool] = None

    @classmethod
    def from_outcome(cls, outcome: TargetOutcome) -> "TargetOutcomeResponse":
        return cls(
            target=outcome.target.key,
            url=outcome.target.url,
            success=outcome.success,
            record_count=outcome.record_count,
            reason=outcome.reason,
            duration_seconds=round(outcome.duration_seconds, 3),
            pattern=outcome.pattern,
            converged=outcome.converged,
        )


class ProductsResponse(BaseModel):
    """Response model for a full fleet run."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    data: ProductsData
    scraped_at: datetime = Field(alias="scrapedAt")
    processing_time: int = Field(alias="processingTime")  # milliseconds
    targets: List[TargetOutcomeResponse] = []
    error: Optional[str] = None


class ScrapeRequest(BaseModel):
    """Request model for a single ad-hoc scrape."""
    url: str
    brand: str
    source: str = "generic"
    category: str = "phones"
    screenshot: bool = False


class ScrapeResponse(BaseModel):
    """Response model for a single ad-hoc scrape."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    url: str
    data: List[ProductResponse]
    target: TargetOutcomeResponse
    screenshot: Optional[str] = None
    scraped_at: datetime = Field(alias="scrapedAt")
    processing_time: int = Field(alias="processingTime")


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@router.get("", response_model=ProductsResponse)
async def get_products(
    runner: FleetRunner = Depends(get_fleet_runner),
    targets: List[ScrapeTarget] = Depends(get_targets),
):
    """
    Scrape every configured brand x retailer target and group by category.

    Partial target failures still return 200; only a failure of the run
    itself returns 500.
    """
    started = time.monotonic()

    try:
        result = await runner.run_all(targets)
    except Exception as e:
        logger.exception("Fleet run failed")
        body = ProductsResponse(
            success=False,
            data=ProductsData(),
            scraped_at=datetime.now(timezone.utc),
            processing_time=_elapsed_ms(started),
            error=str(e) or type(e).__name__,
        )
        return JSONResponse(
            status_code=500,
            content=body.model_dump(mode="json", by_alias=True),
        )

    grouped = result.records_by_category(CATEGORIES)
    data: Dict[str, List[ProductResponse]] = {
        category: [ProductResponse.from_record(r) for r in records]
        for category, records in grouped.items()
    }

    return ProductsResponse(
        success=True,
        data=ProductsData(
            phones=data.get("phones", []),
            laptops=data.get("laptops", []),
            gpus=data.get("GPUs", []),
        ),
        scraped_at=datetime.now(timezone.utc),
        processing_time=_elapsed_ms(started),
        targets=[TargetOutcomeResponse.from_outcome(o) for o in result.outcomes.values()],
    )


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape_single(
    request: ScrapeRequest,
    orchestrator: TargetOrchestrator = Depends(get_orchestrator),
):
    """Scrape one listing URL ad hoc, optionally returning a screenshot."""
    parsed = urlparse(request.url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise HTTPException(status_code=400, detail="Invalid URL provided")

    started = time.monotonic()
    target = ScrapeTarget(
        url=request.url,
        brand=request.brand,
        source=request.source,
        category=request.category,
    )

    captured: Dict[str, bytes] = {}

    async def capture_screenshot(surface: RenderSurface) -> None:
        try:
            captured["png"] = await surface.screenshot()
        except Exception as e:
            logger.warning(f"Screenshot failed for {target.key}: {e}")

    run = await orchestrator.run_with_outcome(
        target,
        on_converged=capture_screenshot if request.screenshot else None,
    )

    screenshot = None
    if "png" in captured:
        screenshot = "data:image/png;base64," + base64.b64encode(captured["png"]).decode("ascii")

    return ScrapeResponse(
        success=run.outcome.success,
        url=request.url,
        data=[ProductResponse.from_record(r) for r in run.records],
        target=TargetOutcomeResponse.from_outcome(run.outcome),
        screenshot=screenshot,
        scraped_at=datetime.now(timezone.utc),
        processing_time=_elapsed_ms(started),
    )
