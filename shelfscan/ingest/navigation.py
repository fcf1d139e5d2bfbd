"""Page navigation with bounded retries."""

import asyncio
import logging
from typing import Optional

from shelfscan import metrics
from shelfscan.config import Settings
from shelfscan.ingest.base import NavigationError, ProbeTimeout, RenderSurface
from shelfscan.ingest.retry import Sleep, retry_with_backoff

logger = logging.getLogger(__name__)


class NavigationRetrier:
    """Loads a listing page, retrying transport errors and timeouts."""

    def __init__(self, config: Settings, sleep: Sleep = asyncio.sleep):
        """
        Initialize navigation retrier.

        Args:
            config: Settings carrying retry ceiling, timeouts and backoff base
            sleep: Awaitable sleep used between attempts
        """
        self.max_retries = config.navigation_max_retries
        self.timeout_ms = int(config.navigation_timeout_seconds * 1000)
        self.base_delay = config.navigation_base_delay_seconds
        self.listing_timeout_ms = int(config.listing_wait_timeout_seconds * 1000)
        self._sleep = sleep

    async def navigate(
        self,
        surface: RenderSurface,
        url: str,
        listing_selector: Optional[str] = None,
    ) -> None:
        """
        Navigate to url, then wait for the listing container.

        Args:
            surface: Render surface owned by the caller
            url: Page to load
            listing_selector: Container expected on a results page; its
                absence only means the page may have no results

        Raises:
            NavigationError: When every attempt failed
        """
        async def attempt():
            try:
                await surface.navigate(url, self.timeout_ms)
            except NavigationError:
                metrics.navigation_attempts_total.labels(status="error").inc()
                raise
            except asyncio.TimeoutError:
                metrics.navigation_attempts_total.labels(status="timeout").inc()
                raise NavigationError(url, "Navigation timeout")
            metrics.navigation_attempts_total.labels(status="ok").inc()

        await retry_with_backoff(
            attempt,
            max_attempts=self.max_retries,
            base_delay=self.base_delay,
            retry_on=(NavigationError,),
            description=f"navigation to {url}",
            sleep=self._sleep,
        )

        if not listing_selector:
            return

        try:
            await surface.wait_for_selector(listing_selector, self.listing_timeout_ms)
        except ProbeTimeout:
            logger.info(
                f"Listing container '{listing_selector}' not found on {url} "
                f"- page may have no results"
            )
