from __future__ import annotations

import pytest

from core.matcher import build_index


@pytest.fixture
def roster() -> list[str]:
    return ["Charan", "John Smith", "Jane Doe"]


@pytest.fixture
def roster_index(roster: list[str]):
    return build_index(roster)
