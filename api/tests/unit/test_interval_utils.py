from __future__ import annotations

from datetime import timedelta

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.shared.exceptions.sync import SyncConfigError
from app.shared.utils.interval_utils import parse_repeat_interval


@pytest.mark.parametrize(
    "interval, expected",
    [
        ("30 seconds", timedelta(seconds=30)),
        ("1 minute", timedelta(minutes=1)),
        ("1 hour", timedelta(hours=1)),
        ("2 days", timedelta(days=2)),
        ("1 week", timedelta(weeks=1)),
        ("  3 Hours ", timedelta(hours=3)),
    ],
)
def test_interval_units_map_to_interval_trigger(interval, expected) -> None:
    trigger = parse_repeat_interval(interval)
    assert isinstance(trigger, IntervalTrigger)
    assert trigger.interval == expected


def test_months_map_to_cron_trigger() -> None:
    trigger = parse_repeat_interval("3 months")
    assert isinstance(trigger, CronTrigger)
    fields = {f.name: str(f) for f in trigger.fields}
    assert fields["month"] == "*/3"
    assert fields["day"] == "1"
    assert fields["hour"] == "0"
    assert fields["minute"] == "0"


@pytest.mark.parametrize("interval", ["", "hourly", "1 fortnight", "-1 hour", "1.5 hours", None])
def test_invalid_interval_raises(interval) -> None:
    with pytest.raises(SyncConfigError):
        parse_repeat_interval(interval)


def test_zero_interval_raises() -> None:
    with pytest.raises(SyncConfigError) as exc_info:
        parse_repeat_interval("0 hours")
    assert exc_info.value.details == {"field": "PRODUCT_SYNC_INTERVAL"}
