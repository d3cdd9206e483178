from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional

from ..utils.time import parse_local_time, resolve_zone

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class OpeningHours:
    open: str
    close: str


@dataclass(frozen=True)
class TenantPolicy:
    """
    Per-tenant booking rules.
    `weekly_hours` is informational; availability is decided by capacity and the booking window only.
    """

    tenant_id: str
    timezone: str
    capacity_per_slot: int
    booking_horizon_days: int
    weekly_hours: Mapping[str, OpeningHours] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.tenant_id or not str(self.tenant_id).strip():
            raise ValueError("tenant_id is required")
        if resolve_zone(self.timezone) is None:
            raise ValueError(f"unknown timezone: {self.timezone!r}")
        if self.capacity_per_slot < 1:
            raise ValueError("capacity_per_slot must be >= 1")
        if self.booking_horizon_days < 0:
            raise ValueError("booking_horizon_days must be >= 0")
        for day, hours in self.weekly_hours.items():
            if day not in WEEKDAYS:
                raise ValueError(f"unknown weekday: {day!r}")
            if parse_local_time(hours.open) is None or parse_local_time(hours.close) is None:
                raise ValueError(f"opening hours for {day} must be HH:mm")

    def hours_for(self, local_date: date) -> Optional[OpeningHours]:
        return self.weekly_hours.get(WEEKDAYS[local_date.weekday()])

    @classmethod
    def from_mapping(
        cls,
        *,
        tenant_id: str,
        timezone: str,
        capacity_per_slot: int,
        booking_horizon_days: int,
        weekly_hours: Mapping[str, object] | None = None,
    ) -> "TenantPolicy":
        """Build a policy from stored values; hours may be `{"open": .., "close": ..}` or a two-item pair."""
        hours: dict[str, OpeningHours] = {}
        for day, value in (weekly_hours or {}).items():
            if isinstance(value, Mapping):
                hours[day.lower()] = OpeningHours(open=str(value.get("open")), close=str(value.get("close")))
            elif isinstance(value, (list, tuple)) and len(value) == 2:
                hours[day.lower()] = OpeningHours(open=str(value[0]), close=str(value[1]))
            else:
                raise ValueError(f"invalid opening hours for {day!r}")
        return cls(
            tenant_id=tenant_id,
            timezone=timezone,
            capacity_per_slot=capacity_per_slot,
            booking_horizon_days=booking_horizon_days,
            weekly_hours=hours,
        )
