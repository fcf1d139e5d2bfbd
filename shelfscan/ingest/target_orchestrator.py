"""Runs one scrape target end-to-end with full failure isolation."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple

from shelfscan import metrics
from shelfscan.config import Settings
from shelfscan.ingest.base import (
    ConvergenceState,
    LoadingPattern,
    ProductRecord,
    RenderSurface,
    ScrapeTarget,
    SessionError,
    Viewport,
)
from shelfscan.ingest.convergence import ConvergenceDriver, ConvergenceReport
from shelfscan.ingest.extractor import Extractor
from shelfscan.ingest.navigation import NavigationRetrier
from shelfscan.ingest.pattern_detector import PatternDetector
from shelfscan.ingest.profiles import SelectorProfile, get_profile
from shelfscan.ingest.user_agent_pool import user_agent_pool
from shelfscan.logging_config import get_target_logger

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[[], Awaitable[RenderSurface]]
# Called with the surface after extraction, before it is released
SurfaceHook = Callable[[RenderSurface], Awaitable[None]]


@dataclass
class TargetOutcome:
    """What happened to one target in a run."""
    target: ScrapeTarget
    success: bool
    record_count: int = 0
    reason: Optional[str] = None
    duration_seconds: float = 0.0
    pattern: Optional[str] = None
    converged: Optional[bool] = None


@dataclass
class TargetRun:
    """Records plus outcome for one target."""
    target: ScrapeTarget
    records: List[ProductRecord] = field(default_factory=list)
    outcome: Optional[TargetOutcome] = None


class TargetOrchestrator:
    """
    Owns one render session per target run.

    Pipeline: open session -> configure -> navigate -> detect pattern ->
    converge -> extract. Every failure is converted to an empty result and a
    failed outcome; the session is always closed.
    """

    def __init__(
        self,
        config: Settings,
        surface_factory: SurfaceFactory,
        navigator: Optional[NavigationRetrier] = None,
        detector: Optional[PatternDetector] = None,
        driver: Optional[ConvergenceDriver] = None,
        extractor: Optional[Extractor] = None,
    ):
        """
        Initialize target orchestrator.

        Args:
            config: Settings for session, timeouts and loop tuning
            surface_factory: Coroutine returning a fresh, unshared RenderSurface
            navigator: Optional NavigationRetrier (built from config if None)
            detector: Optional PatternDetector
            driver: Optional ConvergenceDriver (built from config if None)
            extractor: Optional Extractor
        """
        self.config = config
        self.surface_factory = surface_factory
        self.navigator = navigator or NavigationRetrier(config)
        self.detector = detector or PatternDetector()
        self.driver = driver or ConvergenceDriver(config)
        self.extractor = extractor or Extractor()

    async def run(self, target: ScrapeTarget) -> List[ProductRecord]:
        """Scrape a target; returns an empty list on any failure."""
        result = await self.run_with_outcome(target)
        return result.records

    async def run_with_outcome(
        self,
        target: ScrapeTarget,
        on_converged: Optional[SurfaceHook] = None,
    ) -> TargetRun:
        """
        Scrape a target and report how it went. Never raises.

        Args:
            target: Target to scrape
            on_converged: Optional hook run against the surface after
                extraction (e.g. to take a screenshot)

        Returns:
            TargetRun with records (empty on failure) and the outcome
        """
        log = get_target_logger(__name__, target.key)
        profile = get_profile(target.source)
        started = time.monotonic()
        run = TargetRun(target=target)
        report: Optional[ConvergenceReport] = None
        surface: Optional[RenderSurface] = None

        try:
            surface = await self._open_session()

            records, report = await self._pipeline(surface, target, profile, log)

            if on_converged is not None:
                await on_converged(surface)

            run.records = records
            run.outcome = TargetOutcome(
                target=target,
                success=True,
                record_count=len(records),
            )
            log.info(
                f"Extracted {len(records)} records "
                f"({report.pattern.value}, {report.iterations} iterations, "
                f"converged={report.converged})"
            )

        except asyncio.TimeoutError:
            reason = f"Timed out after {self.config.target_timeout_seconds:.0f}s loading page"
            log.error(reason)
            run.outcome = TargetOutcome(target=target, success=False, reason=reason)

        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
            log.error(f"Target failed: {reason}")
            run.outcome = TargetOutcome(target=target, success=False, reason=reason)

        finally:
            if surface is not None:
                try:
                    await surface.close()
                except Exception as e:
                    log.warning(f"Error closing render session: {e}")

        run.outcome.duration_seconds = time.monotonic() - started
        if report is not None:
            run.outcome.pattern = report.pattern.value
            run.outcome.converged = report.converged

        metrics.target_runs_total.labels(
            source=target.source,
            status="success" if run.outcome.success else "failure",
        ).inc()
        metrics.target_duration_seconds.labels(source=target.source).observe(
            run.outcome.duration_seconds
        )

        return run

    async def _open_session(self) -> RenderSurface:
        """Open and configure a fresh render session."""
        try:
            surface = await self.surface_factory()
        except SessionError:
            raise
        except Exception as e:
            raise SessionError(f"Could not open render session: {e}") from e

        user_agent = self.config.user_agent
        if self.config.rotate_user_agent:
            user_agent = user_agent_pool.get_random()

        try:
            await surface.configure(
                viewport=Viewport(self.config.viewport_width, self.config.viewport_height),
                user_agent=user_agent,
                headers={"Accept-Language": self.config.accept_language},
                blocked_resource_types=list(self.config.blocked_resource_types),
            )
        except Exception as e:
            try:
                await surface.close()
            except Exception as close_error:
                logger.debug(f"Error closing unconfigured session: {close_error}")
            if isinstance(e, SessionError):
                raise
            raise SessionError(f"Could not configure render session: {e}") from e

        return surface

    async def _pipeline(
        self,
        surface: RenderSurface,
        target: ScrapeTarget,
        profile: SelectorProfile,
        log: logging.LoggerAdapter,
    ) -> Tuple[List[ProductRecord], ConvergenceReport]:
        """
        navigate -> detect -> converge -> extract, strictly in sequence.

        target_timeout_seconds bounds loading and convergence together. A
        timeout while loading fails the target; a timeout while converging
        only stops the loop, and extraction still runs on what loaded.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.target_timeout_seconds

        pattern = await asyncio.wait_for(
            self._load(surface, target, profile, log),
            timeout=self.config.target_timeout_seconds,
        )

        state = ConvergenceState()
        try:
            report = await asyncio.wait_for(
                self.driver.run(surface, pattern, profile.card, state=state),
                timeout=max(deadline - loop.time(), 0),
            )
        except asyncio.TimeoutError:
            log.warning(
                f"Convergence cut off by the {self.config.target_timeout_seconds:.0f}s "
                f"target budget after {state.iteration} iterations, extracting what loaded"
            )
            report = ConvergenceReport(
                pattern=pattern,
                iterations=state.iteration,
                final_count=max(state.previous_count, 0),
                stable_iterations=state.stable_iterations,
                converged=False,
            )

        records = await self.extractor.extract(surface, target.brand, profile)
        return records, report

    async def _load(
        self,
        surface: RenderSurface,
        target: ScrapeTarget,
        profile: SelectorProfile,
        log: logging.LoggerAdapter,
    ) -> LoadingPattern:
        await self.navigator.navigate(surface, target.url, profile.container)

        pattern = await self.detector.detect(surface)
        log.debug(f"Detected loading pattern: {pattern.value}")
        return pattern
