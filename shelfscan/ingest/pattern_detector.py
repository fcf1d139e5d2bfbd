"""Classifies how a listing page reveals more results."""

import logging

from shelfscan.ingest import probes
from shelfscan.ingest.base import LoadingPattern, RenderSurface
from shelfscan.ingest.profiles import (
    INFINITE_SCROLL_MARKERS,
    LOAD_MORE_MARKERS,
    PAGINATION_MARKERS,
)

logger = logging.getLogger(__name__)


class PatternDetector:
    """Single read-only DOM check; first matching marker group wins."""

    def __init__(
        self,
        infinite_markers=None,
        button_markers=None,
        pagination_markers=None,
    ):
        self.markers = {
            "infinite": list(infinite_markers or INFINITE_SCROLL_MARKERS),
            "button": list(button_markers or LOAD_MORE_MARKERS),
            "pagination": list(pagination_markers or PAGINATION_MARKERS),
        }

    async def detect(self, surface: RenderSurface) -> LoadingPattern:
        """
        Detect the loading pattern of the page currently on the surface.

        Precedence: infinite scroll, then load-more button, then pagination.
        A failed check is logged and reported as NONE, since the pattern
        only picks the stimulus and never the stopping rule.
        """
        try:
            found = await surface.evaluate(probes.PATTERN_MARKERS, self.markers)
        except Exception as e:
            logger.warning(f"Pattern detection failed, assuming none: {type(e).__name__}: {e}")
            return LoadingPattern.NONE

        found = found or {}
        if found.get("infinite"):
            return LoadingPattern.INFINITE
        if found.get("button"):
            return LoadingPattern.BUTTON
        if found.get("pagination"):
            return LoadingPattern.PAGINATION
        return LoadingPattern.NONE
