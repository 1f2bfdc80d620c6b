"""
Pytest configuration and fixtures.

Builders live in ``factories``; nothing here needs a database.
"""
import pytest

from factories import FakeDistanceProvider, make_business


@pytest.fixture
def business():
    return make_business()


@pytest.fixture
def distance_provider():
    return FakeDistanceProvider()
