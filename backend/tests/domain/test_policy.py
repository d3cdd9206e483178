from datetime import date

import pytest
from tablebook.domain.policy import OpeningHours, TenantPolicy


def test_rejects_capacity_below_one() -> None:
    with pytest.raises(ValueError):
        TenantPolicy(tenant_id="bistro", timezone="UTC", capacity_per_slot=0, booking_horizon_days=30)


def test_rejects_negative_horizon() -> None:
    with pytest.raises(ValueError):
        TenantPolicy(tenant_id="bistro", timezone="UTC", capacity_per_slot=1, booking_horizon_days=-1)


def test_rejects_unknown_timezone() -> None:
    with pytest.raises(ValueError):
        TenantPolicy(tenant_id="bistro", timezone="Mars/Olympus", capacity_per_slot=1, booking_horizon_days=0)


def test_zero_horizon_is_allowed() -> None:
    policy = TenantPolicy(tenant_id="bistro", timezone="UTC", capacity_per_slot=1, booking_horizon_days=0)
    assert policy.booking_horizon_days == 0


def test_from_mapping_reads_stored_hours() -> None:
    policy = TenantPolicy.from_mapping(
        tenant_id="bistro",
        timezone="America/Los_Angeles",
        capacity_per_slot=4,
        booking_horizon_days=14,
        weekly_hours={"Friday": {"open": "17:00", "close": "23:00"}, "saturday": ["12:00", "23:30"]},
    )
    # 2025-07-04 is a Friday.
    assert policy.hours_for(date(2025, 7, 4)) == OpeningHours(open="17:00", close="23:00")
    assert policy.hours_for(date(2025, 7, 5)) == OpeningHours(open="12:00", close="23:30")
    assert policy.hours_for(date(2025, 7, 6)) is None


def test_from_mapping_rejects_malformed_hours() -> None:
    with pytest.raises(ValueError):
        TenantPolicy.from_mapping(
            tenant_id="bistro",
            timezone="UTC",
            capacity_per_slot=1,
            booking_horizon_days=1,
            weekly_hours={"monday": {"open": "5pm", "close": "23:00"}},
        )
