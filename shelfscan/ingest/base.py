"""Core data model, render surface interface and error types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# Error taxonomy
class ScrapeError(Exception):
    """Base class for scrape pipeline errors."""


class NavigationError(ScrapeError):
    """Page load failed (transport error or content-loaded timeout)."""
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to load {url}: {reason}")


class ExtractionError(ScrapeError):
    """A single listing card could not be turned into a record."""


class ProbeTimeout(ScrapeError):
    """A bounded wait step exceeded its ceiling."""
    def __init__(self, what: str, timeout: float):
        self.what = what
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:.1f}s waiting for {what}")


class SessionError(ScrapeError):
    """Render session could not be created or configured."""


class LoadingPattern(str, Enum):
    """How a listing page reveals more results."""
    INFINITE = "infinite"
    BUTTON = "button"
    PAGINATION = "pagination"
    NONE = "none"


@dataclass(frozen=True)
class ScrapeTarget:
    """One page to scrape: a brand on a given retailer, for a product category."""

    url: str
    brand: str
    source: str
    category: str = "phones"

    @property
    def key(self) -> str:
        """Identity used for logging and outcome attribution."""
        return f"{self.category}:{self.brand}@{self.source}"


@dataclass
class ProductRecord:
    """A product listing extracted from a converged page."""

    sequence_id: int
    brand: str
    title: str
    price: str
    image_url: Optional[str] = None
    product_url: Optional[str] = None
    captured_at: Optional[datetime] = None  # stamped with UTC now when omitted

    def __post_init__(self):
        if self.captured_at is None:
            self.captured_at = datetime.now(timezone.utc)


@dataclass
class ConvergenceState:
    """Mutable loop state for one convergence run."""

    iteration: int = 0
    previous_count: int = -1  # -1 until the first count is read
    stable_iterations: int = 0


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int


class RenderSurface(ABC):
    """
    A live, script-capable page owned by exactly one scrape target.

    Implementations wrap a headless browser page. The convergence engine
    only talks to this interface, so tests drive it with a scripted fake.
    """

    @abstractmethod
    async def configure(
        self,
        viewport: Viewport,
        user_agent: str,
        headers: Dict[str, str],
        blocked_resource_types: List[str],
    ) -> None:
        """
        Configure the session before navigation.

        Raises:
            SessionError: If the session cannot be configured
        """

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: int) -> None:
        """
        Load a URL and wait for the content-loaded signal.

        Raises:
            NavigationError: On timeout or transport failure
        """

    @abstractmethod
    async def wait_for_selector(
        self, selector: str, timeout_ms: int, hidden: bool = False
    ) -> None:
        """
        Wait for a selector to appear (or disappear when hidden=True).

        Raises:
            ProbeTimeout: If the state is not reached within timeout_ms
        """

    @abstractmethod
    async def query_count(self, selector: str) -> int:
        """Count elements currently matching a selector."""

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a script against the live DOM and return its result."""

    @abstractmethod
    async def click(self, selector: str) -> bool:
        """Click the first visible, enabled match. False if none was clickable."""

    @abstractmethod
    async def scroll_by(self, pixels: int) -> None:
        """Scroll the window vertically."""

    @abstractmethod
    async def screenshot(self) -> bytes:
        """Capture a PNG of the current viewport."""

    @abstractmethod
    async def close(self) -> None:
        """Release the session."""
