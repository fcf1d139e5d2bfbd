"""Tests for page navigation retries."""

import pytest

from shelfscan.config import Settings
from shelfscan.ingest.base import NavigationError
from shelfscan.ingest.navigation import NavigationRetrier

from tests.fakes import FakePage, FakeSurface

URL = "https://www.newegg.com/p/pl?d=AMD+graphics+card"


@pytest.mark.asyncio
async def test_navigates_then_waits_for_listing_container(fast_settings, sleeps):
    surface = FakeSurface(FakePage())
    retrier = NavigationRetrier(fast_settings, sleep=sleeps)

    await retrier.navigate(surface, URL, ".item-cells-wrap")

    assert surface.navigations == [URL]
    assert surface.waited_selectors == [".item-cells-wrap"]
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_recovers_after_transient_failures(fast_settings, sleeps):
    surface = FakeSurface(FakePage(navigation_failures=2))
    retrier = NavigationRetrier(fast_settings, sleep=sleeps)

    await retrier.navigate(surface, URL)

    assert len(surface.navigations) == 3


@pytest.mark.asyncio
async def test_exhausts_exactly_max_retries_with_linear_backoff(sleeps):
    config = Settings(_env_file=None, navigation_max_retries=3, navigation_base_delay_seconds=2.0)
    surface = FakeSurface(FakePage(navigation_failures=-1))
    retrier = NavigationRetrier(config, sleep=sleeps)

    with pytest.raises(NavigationError):
        await retrier.navigate(surface, URL, ".item-cells-wrap")

    assert len(surface.navigations) == 3
    assert sleeps.calls == [2.0, 4.0]
    # Never got far enough to look for listings
    assert surface.waited_selectors == []


@pytest.mark.asyncio
async def test_missing_listing_container_is_not_an_error(fast_settings, sleeps):
    surface = FakeSurface(FakePage(listing_present=False))
    retrier = NavigationRetrier(fast_settings, sleep=sleeps)

    await retrier.navigate(surface, URL, ".item-cells-wrap")

    assert surface.waited_selectors == [".item-cells-wrap"]
