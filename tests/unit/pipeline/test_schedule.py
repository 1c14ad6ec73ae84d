from datetime import datetime, timezone

import pytest

from core.config_loader import ScheduleConfig
from main import next_run_time


@pytest.mark.parametrize("now,expected", [
    (datetime(2026, 3, 2, 5, 59, tzinfo=timezone.utc), datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)),
    (datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc), datetime(2026, 3, 3, 6, 0, tzinfo=timezone.utc)),
    (datetime(2026, 3, 2, 6, 0, 1, tzinfo=timezone.utc), datetime(2026, 3, 3, 6, 0, tzinfo=timezone.utc)),
    (datetime(2026, 12, 31, 23, 0, tzinfo=timezone.utc), datetime(2027, 1, 1, 6, 0, tzinfo=timezone.utc)),
])
def test_next_run_time(now, expected):
    assert next_run_time(now, ScheduleConfig(run_at="06:00")) == expected


def test_next_run_time_respects_minutes():
    now = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)
    assert next_run_time(now, ScheduleConfig(run_at="06:30")) == datetime(2026, 3, 2, 6, 30, tzinfo=timezone.utc)
