"""Shared fixtures."""

from collections.abc import Generator

import pytest
from aioresponses import aioresponses as aioresponses_cls

CIPULSE_VARIABLES = ("CIPULSE_API_KEY", "CIPULSE_API_URL")


@pytest.fixture(autouse=True)
def _clean_cipulse_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the reporter's own settings from leaking in from the host."""
    for name in CIPULSE_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def aioresponses() -> Generator[aioresponses_cls]:
    """Mock all aiohttp requests; unmatched requests fail to connect."""
    with aioresponses_cls() as mocked:
        yield mocked
