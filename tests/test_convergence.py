"""Tests for the lazy-load convergence loop."""

import pytest

from shelfscan.config import Settings
from shelfscan.ingest.base import LoadingPattern
from shelfscan.ingest.convergence import ConvergenceDriver
from shelfscan.ingest.profiles import LOAD_MORE_SELECTORS

from tests.fakes import CARD_SELECTOR, FakePage, FakeSurface


class TestStoppingRule:
    """Debounced stability counting and the iteration ceiling."""

    @pytest.mark.asyncio
    async def test_constant_count_exits_after_exactly_three_stable_iterations(self, fast_settings, sleeps):
        surface = FakeSurface(FakePage(counts=[12]))
        driver = ConvergenceDriver(fast_settings, sleep=sleeps)

        report = await driver.run(surface, LoadingPattern.NONE, CARD_SELECTOR)

        assert report.converged is True
        assert report.stable_iterations == 3
        # First read establishes the baseline, then three unchanged reads
        assert report.iterations == 4
        assert surface.count_reads == 4
        assert report.final_count == 12

    @pytest.mark.asyncio
    async def test_always_growing_count_stops_at_iteration_ceiling(self, fast_settings, sleeps):
        surface = FakeSurface(FakePage(counts=list(range(1, 100))))
        driver = ConvergenceDriver(fast_settings, sleep=sleeps)

        report = await driver.run(surface, LoadingPattern.INFINITE, CARD_SELECTOR)

        assert report.converged is False
        assert report.iterations == 15
        assert surface.count_reads == 15

    @pytest.mark.asyncio
    async def test_growth_resets_the_stability_counter(self, fast_settings, sleeps):
        surface = FakeSurface(FakePage(counts=[5, 5, 5, 6, 6, 6, 6]))
        driver = ConvergenceDriver(fast_settings, sleep=sleeps)

        report = await driver.run(surface, LoadingPattern.INFINITE, CARD_SELECTOR)

        assert report.converged is True
        assert report.iterations == 7
        assert report.final_count == 6

    @pytest.mark.asyncio
    async def test_failed_count_read_ends_loop_with_last_count(self, fast_settings, sleeps):
        # Third read fails, as when a load-more click navigates the page
        surface = FakeSurface(FakePage(counts=[4, 8, 8, 8], count_error_on=3))
        driver = ConvergenceDriver(fast_settings, sleep=sleeps)

        report = await driver.run(surface, LoadingPattern.BUTTON, CARD_SELECTOR)

        assert report.converged is False
        assert report.iterations == 3
        assert report.final_count == 8
        assert surface.count_reads == 3

    @pytest.mark.asyncio
    async def test_custom_ceiling_and_threshold(self, sleeps):
        config = Settings(
            _env_file=None,
            max_iterations=5,
            stable_threshold=1,
            lazy_image_timeout_seconds=0.01,
            loading_indicator_timeout_seconds=0.01,
        )
        surface = FakeSurface(FakePage(counts=[3]))

        report = await ConvergenceDriver(config, sleep=sleeps).run(
            surface, LoadingPattern.NONE, CARD_SELECTOR
        )

        assert report.converged is True
        assert report.iterations == 2

    @pytest.mark.asyncio
    async def test_iteration_and_settle_delays(self, sleeps):
        config = Settings(
            _env_file=None,
            iteration_delay_seconds=2.0,
            settle_delay_seconds=1.5,
            lazy_image_timeout_seconds=0.01,
            loading_indicator_timeout_seconds=0.01,
        )
        surface = FakeSurface(FakePage(counts=[4]))

        await ConvergenceDriver(config, sleep=sleeps).run(surface, LoadingPattern.NONE, CARD_SELECTOR)

        # Three iterations apply a stimulus and wait; the fourth converges
        assert sleeps.calls == [2.0, 2.0, 2.0, 1.5]


class TestStimulus:
    """Scroll and load-more click behaviour."""

    @pytest.mark.asyncio
    async def test_button_pattern_clicks_first_clickable_candidate(self, fast_settings, sleeps):
        candidate = LOAD_MORE_SELECTORS[2]
        surface = FakeSurface(FakePage(counts=[10, 20, 30, 30, 30, 30], clickable=[candidate]))

        report = await ConvergenceDriver(fast_settings, sleep=sleeps).run(
            surface, LoadingPattern.BUTTON, CARD_SELECTOR
        )

        assert report.converged is True
        assert report.clicks == 5
        assert surface.clicks == [candidate] * 5
        assert surface.scrolls == []

    @pytest.mark.asyncio
    async def test_button_pattern_falls_back_to_scroll(self, fast_settings, sleeps):
        surface = FakeSurface(FakePage(counts=[8], page_height=3000))

        report = await ConvergenceDriver(fast_settings, sleep=sleeps).run(
            surface, LoadingPattern.BUTTON, CARD_SELECTOR
        )

        assert report.clicks == 0
        assert surface.clicks == []
        assert surface.scrolls == [fast_settings.scroll_step_pixels] * 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "pattern",
        [LoadingPattern.INFINITE, LoadingPattern.PAGINATION, LoadingPattern.NONE],
    )
    async def test_other_patterns_scroll_to_bottom(self, pattern, fast_settings, sleeps):
        surface = FakeSurface(FakePage(counts=[8], page_height=2200, clickable=list(LOAD_MORE_SELECTORS)))

        await ConvergenceDriver(fast_settings, sleep=sleeps).run(surface, pattern, CARD_SELECTOR)

        assert surface.clicks == []
        assert surface.scroll_y >= 2200 - FakeSurface.VIEWPORT_HEIGHT

    @pytest.mark.asyncio
    async def test_scroll_is_bounded_on_endless_page(self, sleeps):
        config = Settings(
            _env_file=None,
            max_iterations=1,
            max_scroll_steps=7,
            lazy_image_timeout_seconds=0.01,
            loading_indicator_timeout_seconds=0.01,
        )
        surface = FakeSurface(FakePage(counts=[1], page_height=10**9))

        await ConvergenceDriver(config, sleep=sleeps).run(surface, LoadingPattern.INFINITE, CARD_SELECTOR)

        assert len(surface.scrolls) == 7

    @pytest.mark.asyncio
    async def test_stimulus_error_does_not_stop_the_loop(self, fast_settings, sleeps):
        class JammedSurface(FakeSurface):
            async def scroll_by(self, pixels):
                raise RuntimeError("Target page, context or browser has been closed")

        surface = JammedSurface(FakePage(counts=[2], page_height=5000))

        report = await ConvergenceDriver(fast_settings, sleep=sleeps).run(
            surface, LoadingPattern.INFINITE, CARD_SELECTOR
        )

        assert report.converged is True


class TestBestEffortWaits:
    """Lazy image and loading indicator waits degrade instead of failing."""

    @pytest.mark.asyncio
    async def test_stuck_loading_indicator_is_ignored(self, fast_settings, sleeps):
        surface = FakeSurface(FakePage(counts=[6], indicator_counts={".spinner": [1]}))
        driver = ConvergenceDriver(fast_settings, loading_indicators=[".spinner"], sleep=sleeps)

        report = await driver.run(surface, LoadingPattern.NONE, CARD_SELECTOR)

        assert report.converged is True
        assert report.iterations == 4

    @pytest.mark.asyncio
    async def test_waits_for_visible_indicator_to_hide(self, fast_settings, sleeps):
        page = FakePage(counts=[6], indicator_counts={".spinner": [2, 1, 0]})
        surface = FakeSurface(page)
        driver = ConvergenceDriver(fast_settings, loading_indicators=[".spinner"], sleep=sleeps)

        await driver.run(surface, LoadingPattern.NONE, CARD_SELECTOR)

        # Only the first iteration sees the spinner; later ones skip the wait
        assert surface.hidden_waits == [".spinner"]
        assert page.indicator_counts[".spinner"] == [0]

    @pytest.mark.asyncio
    async def test_waits_for_lazy_images_to_settle(self, fast_settings, sleeps):
        page = FakePage(counts=[6], pending_images=[3, 2, 0])
        surface = FakeSurface(page)

        report = await ConvergenceDriver(fast_settings, sleep=sleeps).run(
            surface, LoadingPattern.NONE, CARD_SELECTOR
        )

        assert report.converged is True
        assert page.pending_images == [0]

    @pytest.mark.asyncio
    async def test_never_loading_images_do_not_block(self, fast_settings, sleeps):
        surface = FakeSurface(FakePage(counts=[6], pending_images=[4]))

        report = await ConvergenceDriver(fast_settings, sleep=sleeps).run(
            surface, LoadingPattern.NONE, CARD_SELECTOR
        )

        assert report.converged is True
