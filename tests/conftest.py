"""Shared fixtures."""

from typing import List

import pytest

from shelfscan.config import Settings


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with every delay and ceiling shrunk for unit tests."""
    return Settings(
        _env_file=None,
        navigation_base_delay_seconds=0.0,
        listing_wait_timeout_seconds=0.05,
        iteration_delay_seconds=0.0,
        settle_delay_seconds=0.0,
        scroll_step_delay_seconds=0.0,
        lazy_image_timeout_seconds=0.05,
        loading_indicator_timeout_seconds=0.05,
        poll_interval_seconds=0.01,
        max_concurrent_targets=0,
        target_timeout_seconds=5.0,
    )


@pytest.fixture
def sleeps():
    """Recording replacement for asyncio.sleep."""
    recorded: List[float] = []

    async def fake_sleep(seconds: float) -> None:
        recorded.append(seconds)

    fake_sleep.calls = recorded
    return fake_sleep
