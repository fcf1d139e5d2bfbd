"""Lazy-load convergence loop.

Drives a listing page toward the state where it has stopped producing new
cards. Each iteration reads the card count, applies a stimulus (scroll or a
load-more click) and waits for network content, lazy images and loading
indicators to settle. The loop ends once the count has been unchanged for
`stable_threshold` consecutive reads, or at `max_iterations`.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from shelfscan import metrics
from shelfscan.config import Settings
from shelfscan.ingest import probes
from shelfscan.ingest.base import (
    ConvergenceState,
    LoadingPattern,
    ProbeTimeout,
    RenderSurface,
)
from shelfscan.ingest.profiles import LOAD_MORE_SELECTORS, LOADING_INDICATORS
from shelfscan.ingest.retry import Sleep, poll_until

logger = logging.getLogger(__name__)


@dataclass
class ConvergenceReport:
    """How a convergence run ended."""
    pattern: LoadingPattern
    iterations: int
    final_count: int
    stable_iterations: int
    converged: bool
    clicks: int = 0


class ConvergenceDriver:
    """Scroll/click-driven loop with debounced stability counting."""

    def __init__(
        self,
        config: Settings,
        load_more_selectors: Optional[List[str]] = None,
        loading_indicators: Optional[List[str]] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.load_more_selectors = list(load_more_selectors or LOAD_MORE_SELECTORS)
        self.loading_indicators = list(loading_indicators or LOADING_INDICATORS)
        self._sleep = sleep

    async def run(
        self,
        surface: RenderSurface,
        pattern: LoadingPattern,
        card_selector: str,
        state: Optional[ConvergenceState] = None,
    ) -> ConvergenceReport:
        """
        Drive the page until the card count stabilizes or the ceiling is hit.

        Never raises for a slow, stuck or broken page. A failed card count
        ends the loop early and whatever loaded is kept.

        Args:
            surface: Render surface with the listing page loaded
            pattern: Detected loading pattern, selects the stimulus
            card_selector: Selector whose match count is monitored
            state: Optional loop state to update in place, readable by the
                caller if the run is cancelled

        Returns:
            ConvergenceReport describing the run
        """
        state = state if state is not None else ConvergenceState()
        converged = False
        count_failed = False
        clicks = 0

        while state.iteration < self.config.max_iterations:
            state.iteration += 1

            try:
                count = await surface.query_count(card_selector)
            except Exception as e:
                logger.warning(
                    f"Card count failed on iteration {state.iteration}, keeping "
                    f"{max(state.previous_count, 0)} cards: {type(e).__name__}: {e}"
                )
                count_failed = True
                break

            if count == state.previous_count:
                state.stable_iterations += 1
                if state.stable_iterations >= self.config.stable_threshold:
                    converged = True
                    logger.debug(
                        f"Converged at {count} cards after {state.iteration} iterations"
                    )
                    break
            else:
                state.stable_iterations = 0
            state.previous_count = count

            try:
                if await self._apply_stimulus(surface, pattern):
                    clicks += 1
            except Exception as e:
                logger.warning(f"Stimulus failed on iteration {state.iteration}: {type(e).__name__}: {e}")

            await self._sleep(self.config.iteration_delay_seconds)
            await self._wait_for_lazy_images(surface)
            await self._wait_for_loading_indicators(surface)

        if not converged and not count_failed:
            logger.info(
                f"Iteration ceiling ({self.config.max_iterations}) reached with "
                f"{state.previous_count} cards, proceeding with what loaded"
            )

        await self._sleep(self.config.settle_delay_seconds)

        if converged:
            outcome = "converged"
        elif count_failed:
            outcome = "count_error"
        else:
            outcome = "ceiling"
        metrics.convergence_iterations.labels(pattern=pattern.value).observe(state.iteration)
        metrics.convergence_outcomes_total.labels(pattern=pattern.value, outcome=outcome).inc()

        return ConvergenceReport(
            pattern=pattern,
            iterations=state.iteration,
            final_count=max(state.previous_count, 0),
            stable_iterations=state.stable_iterations,
            converged=converged,
            clicks=clicks,
        )

    async def _apply_stimulus(self, surface: RenderSurface, pattern: LoadingPattern) -> bool:
        """Click load-more for button pages, otherwise scroll. True if clicked."""
        if pattern == LoadingPattern.BUTTON:
            if await self._click_load_more(surface):
                return True
            logger.debug("No clickable load-more control, falling back to scroll")

        await self._scroll_to_bottom(surface)
        return False

    async def _click_load_more(self, surface: RenderSurface) -> bool:
        for selector in self.load_more_selectors:
            if await surface.click(selector):
                logger.debug(f"Clicked load-more control: {selector}")
                return True
        return False

    async def _scroll_to_bottom(self, surface: RenderSurface) -> None:
        """
        Step toward the bottom of the (growing) document.

        Moves scroll_step_pixels at a time with a pause after each step, and
        stops at the bottom or after max_scroll_steps.
        """
        step = self.config.scroll_step_pixels
        for _ in range(self.config.max_scroll_steps):
            position = await surface.evaluate(probes.SCROLL_METRICS)
            if not position:
                break
            if position["y"] + position["viewport"] >= position["height"]:
                break
            await surface.scroll_by(step)
            await self._sleep(self.config.scroll_step_delay_seconds)

    async def _wait_for_lazy_images(self, surface: RenderSurface) -> None:
        """Best-effort wait for data-src / loading=lazy images to load or error."""
        try:
            await poll_until(
                lambda: surface.evaluate(probes.PENDING_LAZY_IMAGES),
                lambda pending: not pending,
                timeout=self.config.lazy_image_timeout_seconds,
                interval=self.config.poll_interval_seconds,
                description="lazy images",
            )
        except ProbeTimeout as e:
            logger.debug(f"{e}; continuing")
        except Exception as e:
            logger.debug(f"Lazy image check failed: {type(e).__name__}: {e}")

    async def _wait_for_loading_indicators(self, surface: RenderSurface) -> None:
        """Best-effort wait for spinners and skeletons to disappear."""
        for selector in self.loading_indicators:
            try:
                if not await surface.query_count(selector):
                    continue
                await surface.wait_for_selector(
                    selector,
                    int(self.config.loading_indicator_timeout_seconds * 1000),
                    hidden=True,
                )
            except ProbeTimeout as e:
                logger.warning(f"{e}; ignoring indicator")
            except Exception as e:
                logger.debug(f"Indicator check failed for '{selector}': {type(e).__name__}: {e}")
