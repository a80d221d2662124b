"""Shared fixtures for callguard tests.

Provides a frozen clock and a recording sleep function so no test sleeps
for real.
"""

from datetime import datetime, timezone
from typing import Callable, List

import pytest

from callguard.config import set_config

FROZEN_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def frozen_now() -> Callable[[], datetime]:
    return lambda: FROZEN_NOW


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the global ClientConfig from leaking between tests."""
    set_config(None)
    yield
    set_config(None)


