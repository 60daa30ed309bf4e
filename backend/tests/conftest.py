"""Shared fixtures."""

import pytest

from tests.helpers import FakePlaceStore, build_place


@pytest.fixture
def fake_store() -> FakePlaceStore:
    return FakePlaceStore()


@pytest.fixture
def place_factory():
    return build_place
