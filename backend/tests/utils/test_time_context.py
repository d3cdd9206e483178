from datetime import datetime, timezone

import pytest
from tablebook.utils.time import TimeContext


def _context(now: datetime) -> TimeContext:
    return TimeContext(clock=lambda: now)


def test_now_is_expressed_in_tenant_zone() -> None:
    ctx = _context(datetime(2025, 7, 1, 19, 0, tzinfo=timezone.utc))
    now = ctx.now("America/Los_Angeles")
    assert (now.hour, now.minute) == (12, 0)
    assert now.utcoffset() is not None


def test_now_rejects_unknown_zone() -> None:
    ctx = _context(datetime(2025, 7, 1, 19, 0, tzinfo=timezone.utc))
    with pytest.raises(ValueError):
        ctx.now("Nowhere/Special")


def test_parse_rejects_malformed_parts() -> None:
    ctx = TimeContext()
    assert ctx.parse("2025-02-30", "18:00", "UTC") is None
    assert ctx.parse("2025-07-06", "18:0", "UTC") is None
    assert ctx.parse("2025-07-06", "18:00", "Nowhere/Special") is None
    assert ctx.parse(None, "18:00", "UTC") is None


def test_parse_keeps_wall_clock_in_tenant_zone() -> None:
    instant = TimeContext().parse(" 2025-07-06 ", "18:00", "America/Los_Angeles")
    assert instant is not None
    assert instant.astimezone(timezone.utc) == datetime(2025, 7, 7, 1, 0, tzinfo=timezone.utc)


def test_slot_equal_to_now_is_not_past() -> None:
    ctx = _context(datetime(2025, 7, 1, 19, 0, 42, tzinfo=timezone.utc))
    assert ctx.is_past("2025-07-01", "12:00", "America/Los_Angeles") is False
    assert ctx.is_past("2025-07-01", "11:59", "America/Los_Angeles") is True


def test_past_check_uses_tenant_zone_not_utc() -> None:
    # 2025-07-02 01:00 UTC is still 2025-07-01 18:00 in Los Angeles.
    ctx = _context(datetime(2025, 7, 2, 1, 0, tzinfo=timezone.utc))
    assert ctx.is_past("2025-07-01", "20:00", "America/Los_Angeles") is False
    assert ctx.is_past("2025-07-01", "20:00", "UTC") is True


def test_horizon_end_is_end_of_last_local_day() -> None:
    ctx = _context(datetime(2025, 7, 1, 19, 0, tzinfo=timezone.utc))
    end = ctx.horizon_end("America/Los_Angeles", 30)
    assert end.date().isoformat() == "2025-07-31"
    assert (end.hour, end.minute) == (23, 59)
    assert ctx.beyond_horizon(ctx.parse("2025-07-31", "23:45", "America/Los_Angeles"), "America/Los_Angeles", 30) is False
    assert ctx.beyond_horizon(ctx.parse("2025-08-01", "00:00", "America/Los_Angeles"), "America/Los_Angeles", 30) is True


def test_dst_fall_back_slots_compare_as_instants() -> None:
    # 2025-11-02 01:30 happens twice in Los Angeles; the clock sits in the second pass (PST).
    ctx = _context(datetime(2025, 11, 2, 9, 40, tzinfo=timezone.utc))
    assert ctx.is_past("2025-11-02", "01:00", "America/Los_Angeles") is True
    assert ctx.is_past("2025-11-02", "02:00", "America/Los_Angeles") is False
