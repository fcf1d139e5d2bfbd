"""Tests for the Playwright render surface, with the browser mocked out."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from shelfscan.ingest.base import SessionError, Viewport
from shelfscan.ingest.fetchers.headless import PlaywrightSurface

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/124.0.0.0 Safari/537.36"


def _mock_browser():
    page = MagicMock()
    page.route = AsyncMock()
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    return browser, context, page


class TestConfigure:

    @pytest.mark.asyncio
    async def test_identity_is_set_on_the_context(self):
        browser, _, _ = _mock_browser()
        surface = PlaywrightSurface(browser)

        await surface.configure(
            Viewport(1920, 1080),
            USER_AGENT,
            {"Accept-Language": "en-US,en;q=0.9"},
            [],
        )

        options = browser.new_context.await_args.kwargs
        assert options["user_agent"] == USER_AGENT
        assert options["viewport"] == {"width": 1920, "height": 1080}
        assert options["locale"] == "en-US"
        assert options["extra_http_headers"] == {"Accept-Language": "en-US,en;q=0.9"}

    @pytest.mark.asyncio
    async def test_blocked_resource_types_install_a_route(self):
        browser, _, page = _mock_browser()
        surface = PlaywrightSurface(browser)

        await surface.configure(Viewport(1280, 800), USER_AGENT, {}, ["image", "font"])

        page.route.assert_awaited_once()
        assert browser.new_context.await_args.kwargs["locale"] is None

    @pytest.mark.asyncio
    async def test_no_route_without_blocked_types(self):
        browser, _, page = _mock_browser()

        await PlaywrightSurface(browser).configure(Viewport(1280, 800), USER_AGENT, {}, [])

        page.route.assert_not_awaited()


class TestRouting:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resource_type,aborted", [("image", True), ("document", False)])
    async def test_only_blocked_types_are_aborted(self, resource_type, aborted):
        browser, _, _ = _mock_browser()
        surface = PlaywrightSurface(browser)
        await surface.configure(Viewport(1280, 800), USER_AGENT, {}, ["image"])

        route = MagicMock()
        route.request.resource_type = resource_type
        route.abort = AsyncMock()
        route.continue_ = AsyncMock()

        await surface._route_request(route)

        assert route.abort.await_count == int(aborted)
        assert route.continue_.await_count == int(not aborted)


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_use_before_configure_is_a_session_error(self):
        browser, _, _ = _mock_browser()

        with pytest.raises(SessionError):
            await PlaywrightSurface(browser).navigate("https://shop.example.com", 1000)

    @pytest.mark.asyncio
    async def test_close_releases_the_context_once(self):
        browser, context, _ = _mock_browser()
        surface = PlaywrightSurface(browser)
        await surface.configure(Viewport(1280, 800), USER_AGENT, {}, [])

        await surface.close()
        await surface.close()

        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_without_configure_is_a_no_op(self):
        browser, _, _ = _mock_browser()

        await PlaywrightSurface(browser).close()

        browser.new_context.assert_not_awaited()
