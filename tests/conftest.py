"""Shared test fixtures."""

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from caffeine.domain.models import IntakeRecord, UserProfile  # noqa: E402

USER_ID = "user-42"
# Thursday mid-morning, inside the 09:00-11:00 focus peak
NOW = datetime(2024, 3, 14, 10, 0, tzinfo=UTC)


def make_profile(**overrides) -> UserProfile:
    data = {
        "user_id": USER_ID,
        "weight_kg": 70.0,
        "age": 30,
        "sex": "male",
        "created_at": NOW - timedelta(days=30),
        "average_sleep_7_days": 7.5,
        "mean_daily_caffeine_mg": 200.0,
    }
    data.update(overrides)
    return UserProfile(**data)


def make_intake(hours_ago: float = 1.0, caffeine_mg: float = 100.0, **overrides) -> IntakeRecord:
    data = {
        "name": "Coffee",
        "caffeine_mg": caffeine_mg,
        "timestamp": NOW - timedelta(hours=hours_ago),
    }
    data.update(overrides)
    return IntakeRecord(**data)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def profile():
    return make_profile()


@pytest.fixture
def female_profile():
    return make_profile(sex="female")


@pytest.fixture
def espresso():
    """A fully consumed 100 mg drink taken an hour ago."""
    return make_intake(hours_ago=1.0, caffeine_mg=100.0, name="Espresso")
