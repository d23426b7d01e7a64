import random
from datetime import datetime, timezone

from module_2_field_mapping.core.models import BotStatus
from module_2_field_mapping.services.bot_tracker import BotTracker


def test_tick_drifts_within_bounds() -> None:
    tracker = BotTracker(14.5995, 120.9842, drift=0.001, rng=random.Random(7))
    now = datetime(2025, 11, 4, 16, 18, tzinfo=timezone.utc)

    location = tracker.tick(now)

    assert location is not None
    assert abs(location.lat - 14.5995) <= 0.0005
    assert abs(location.lng - 120.9842) <= 0.0005
    assert location.last_update == now
    assert location.status is BotStatus.ONLINE


def test_status_colors() -> None:
    tracker = BotTracker()

    assert tracker.current().status_color == "#2e7d32"
    assert tracker.set_status(BotStatus.WORKING).status_color == "#ff9800"
    assert tracker.set_status(BotStatus.OFFLINE).status_color == "#f44336"


def test_missing_fix_leaves_location_absent() -> None:
    tracker = BotTracker(lat=None, lng=None)

    assert tracker.current() is None
    assert tracker.tick() is None
    assert tracker.set_status(BotStatus.WORKING) is None

    tracker.update_fix(1.0, 2.0)
    tracker.lose_fix()
    assert tracker.current() is None
