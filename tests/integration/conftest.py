"""Fixtures for end-to-end assembly tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import respx

from repocontext.state import create_app_state

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from repocontext.config import Settings
    from repocontext.state import AppState


@pytest.fixture()
async def app_state(settings: Settings) -> AsyncIterator[AppState]:
    async with create_app_state(settings) as state:
        yield state


@pytest.fixture()
def router() -> Iterator[respx.MockRouter]:
    """Upstream HTTP mock; register routes with ``tests.helpers.serve``."""
    with respx.mock(assert_all_called=False) as mock_router:
        yield mock_router
