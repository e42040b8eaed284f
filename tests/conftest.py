"""Shared fixtures for the pricing tests."""
import os
import sys
from datetime import datetime, timezone

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from cafe_pricing.config.settings import Settings
from cafe_pricing.engine import PricingEngine
from cafe_pricing.engine.clock import FixedClock

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings.load()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def engine(settings, clock):
    """Engine on the shipped rate card with a pinned clock."""
    return PricingEngine(settings=settings, clock=clock)
