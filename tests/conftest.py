"""Fixtures shared by unit and integration tests."""

from __future__ import annotations

from typing import Any

import pytest

from repocontext.config import Settings
from tests.helpers import API_BASE, BRANCH, DOCS_BASE, OWNER, RAW_BASE, REPO, FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        repository={
            "owner": OWNER,
            "name": REPO,
            "branch": BRANCH,
            "api_base_url": API_BASE,
            "raw_base_url": RAW_BASE,
        },
        docs={"base_url": DOCS_BASE},
        cache={"backend": "memory"},
    )


@pytest.fixture()
def tree_payload() -> dict[str, Any]:
    """A ``git/trees?recursive=1`` response body."""
    return {
        "sha": "abc123",
        "truncated": False,
        "tree": [
            {"path": "src", "type": "tree"},
            {"path": "src/components", "type": "tree"},
            {"path": "src/components/Button.tsx", "type": "blob", "size": 1000},
            {"path": "src/components/index.ts", "type": "blob", "size": 200},
            {"path": "src/services/api.js", "type": "blob", "size": 800},
            {"path": "README.md", "type": "blob", "size": 500},
            {"path": "package.json", "type": "blob", "size": 300},
            {"path": "vendor/lib", "type": "commit"},
        ],
    }
