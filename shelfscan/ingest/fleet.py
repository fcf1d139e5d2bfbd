"""Concurrent fan-out over all scrape targets with per-target isolation."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from shelfscan import metrics
from shelfscan.config import Settings
from shelfscan.ingest.base import ProductRecord, ScrapeTarget
from shelfscan.ingest.target_orchestrator import (
    TargetOrchestrator,
    TargetOutcome,
    TargetRun,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FleetResult:
    """
    Merged output of one fleet run.

    `records` is the concatenation of every target's records in the order
    targets finished. Titles are not deduplicated across targets.
    """

    records: Tuple[ProductRecord, ...]
    outcomes: Mapping[str, TargetOutcome]
    runs: Tuple[TargetRun, ...] = ()
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> List[str]:
        return [key for key, outcome in self.outcomes.items() if outcome.success]

    @property
    def failed(self) -> List[str]:
        return [key for key, outcome in self.outcomes.items() if not outcome.success]

    def records_by_category(self, categories: Sequence[str]) -> Dict[str, List[ProductRecord]]:
        """Group records by their target's category, keeping completion order."""
        grouped: Dict[str, List[ProductRecord]] = {category: [] for category in categories}
        for run in self.runs:
            grouped.setdefault(run.target.category, []).extend(run.records)
        return grouped


class FleetRunner:
    """Runs every target concurrently and waits for all of them to settle."""

    def __init__(self, config: Settings, orchestrator: TargetOrchestrator):
        """
        Initialize fleet runner.

        Args:
            config: Settings (max_concurrent_targets bounds open sessions)
            orchestrator: Runs a single target; must not raise
        """
        self.config = config
        self.orchestrator = orchestrator

    async def run_all(self, targets: Sequence[ScrapeTarget]) -> FleetResult:
        """
        Scrape all targets. A failing target never cancels its siblings.

        Args:
            targets: Targets to scrape; duplicate identities are run once

        Returns:
            FleetResult with records in completion order and one outcome per target
        """
        started_at = datetime.now(timezone.utc)
        started = time.monotonic()

        unique: Dict[str, ScrapeTarget] = {}
        for target in targets:
            if target.key in unique:
                logger.warning(f"Duplicate target {target.key} ignored")
                continue
            unique[target.key] = target

        limit = self.config.max_concurrent_targets
        semaphore: Optional[asyncio.Semaphore] = asyncio.Semaphore(limit) if limit > 0 else None

        logger.info(
            f"Starting fleet run over {len(unique)} targets "
            f"(concurrency limit: {limit or 'none'})"
        )

        tasks = [
            asyncio.create_task(self._run_one(target, semaphore))
            for target in unique.values()
        ]

        # Single consumer: runs are appended in the order they settle
        runs: List[TargetRun] = []
        for next_done in asyncio.as_completed(tasks):
            runs.append(await next_done)

        records: List[ProductRecord] = []
        outcomes: Dict[str, TargetOutcome] = {}
        for run in runs:
            records.extend(run.records)
            outcomes[run.target.key] = run.outcome

        result = FleetResult(
            records=tuple(records),
            outcomes=MappingProxyType(outcomes),
            runs=tuple(runs),
            started_at=started_at,
            duration_seconds=time.monotonic() - started,
        )

        metrics.fleet_runs_total.labels(
            status="complete" if not result.failed else "partial"
        ).inc()
        logger.info(
            f"Fleet run finished in {result.duration_seconds:.1f}s: "
            f"{len(result.records)} records, {len(result.succeeded)} targets ok, "
            f"{len(result.failed)} failed"
        )
        for key in result.failed:
            logger.warning(f"Target {key} failed: {outcomes[key].reason}")

        return result

    async def _run_one(
        self,
        target: ScrapeTarget,
        semaphore: Optional[asyncio.Semaphore],
    ) -> TargetRun:
        """Run one target, converting any escaped error into a failed outcome."""
        try:
            if semaphore is None:
                return await self.orchestrator.run_with_outcome(target)
            async with semaphore:
                return await self.orchestrator.run_with_outcome(target)
        except Exception as e:
            logger.exception(f"Orchestrator raised for {target.key}")
            return TargetRun(
                target=target,
                records=[],
                outcome=TargetOutcome(
                    target=target,
                    success=False,
                    reason=f"{type(e).__name__}: {e}",
                ),
            )
