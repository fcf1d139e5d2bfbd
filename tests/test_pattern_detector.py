"""Tests for loading pattern detection."""

import pytest

from shelfscan.ingest.base import LoadingPattern
from shelfscan.ingest.pattern_detector import PatternDetector

from tests.fakes import FakePage, FakeSurface


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "markers,expected",
    [
        ({"infinite": True, "button": True, "pagination": True}, LoadingPattern.INFINITE),
        ({"button": True, "pagination": True}, LoadingPattern.BUTTON),
        ({"pagination": True}, LoadingPattern.PAGINATION),
        ({}, LoadingPattern.NONE),
    ],
)
async def test_first_matching_marker_group_wins(markers, expected):
    surface = FakeSurface(FakePage(markers=markers))

    assert await PatternDetector().detect(surface) == expected


@pytest.mark.asyncio
async def test_detection_failure_reports_none():
    class BrokenSurface(FakeSurface):
        async def evaluate(self, script, arg=None):
            raise RuntimeError("Execution context was destroyed")

    assert await PatternDetector().detect(BrokenSurface()) == LoadingPattern.NONE


@pytest.mark.asyncio
async def test_detection_does_not_touch_the_page():
    surface = FakeSurface(FakePage(markers={"button": True}))

    await PatternDetector().detect(surface)

    assert surface.clicks == []
    assert surface.scrolls == []
    assert surface.navigations == []
