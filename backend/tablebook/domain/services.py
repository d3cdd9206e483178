from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Optional, cast

from ..utils.time import TimeContext, format_time
from .ledger import SlotLedger
from .policy import TenantPolicy


class AvailabilityOutcome(StrEnum):
    AVAILABLE = "available"
    FULL = "full"
    BLOCKED = "blocked"
    OUT_OF_WINDOW = "out_of_window"
    PAST = "past"
    INVALID = "invalid"


@dataclass(frozen=True)
class Alternatives:
    before: Optional[str] = None
    after: Optional[str] = None


@dataclass(frozen=True)
class AvailabilityDecision:
    outcome: AvailabilityOutcome
    date: str
    time_slot: str
    remaining_capacity: int = 0
    alternatives: Optional[Alternatives] = field(default=None)

    @property
    def available(self) -> bool:
        return self.outcome == AvailabilityOutcome.AVAILABLE


class AvailabilityEngine:
    """
    Decides whether a tenant-local slot can take one more reservation.
    Pure: everything it needs arrives as arguments, and "now" comes from the TimeContext clock.
    """

    def __init__(self, time_context: TimeContext, *, step_minutes: int = 15, max_steps: int = 96) -> None:
        self.time_context = time_context
        self.step_minutes = step_minutes
        self.max_steps = max_steps

    def evaluate(
        self,
        instant: Optional[datetime],
        date: str,
        time_slot: str,
        policy: TenantPolicy,
        ledger: SlotLedger,
    ) -> AvailabilityDecision:
        screened = self.screen(instant, date, time_slot, policy)
        if screened is not None:
            return screened
        return self.assess(cast(datetime, instant), date, time_slot, policy, ledger)

    def screen(
        self,
        instant: Optional[datetime],
        date: str,
        time_slot: str,
        policy: TenantPolicy,
    ) -> Optional[AvailabilityDecision]:
        """Parse and window checks, in order: INVALID, PAST, OUT_OF_WINDOW. None when the slot passes."""
        if instant is None:
            return AvailabilityDecision(AvailabilityOutcome.INVALID, date=date, time_slot=time_slot)
        if self.time_context.instant_is_past(instant, policy.timezone):
            return AvailabilityDecision(AvailabilityOutcome.PAST, date=date, time_slot=time_slot)
        if self.time_context.beyond_horizon(instant, policy.timezone, policy.booking_horizon_days):
            return AvailabilityDecision(AvailabilityOutcome.OUT_OF_WINDOW, date=date, time_slot=time_slot)
        return None

    def assess(
        self,
        instant: datetime,
        date: str,
        time_slot: str,
        policy: TenantPolicy,
        ledger: SlotLedger,
    ) -> AvailabilityDecision:
        if ledger.is_blocked(time_slot):
            return AvailabilityDecision(
                AvailabilityOutcome.BLOCKED,
                date=date,
                time_slot=time_slot,
                remaining_capacity=0,
                alternatives=self.find_alternatives(instant, policy, ledger),
            )
        confirmed = ledger.confirmed_count(time_slot)
        if confirmed >= policy.capacity_per_slot:
            return AvailabilityDecision(
                AvailabilityOutcome.FULL,
                date=date,
                time_slot=time_slot,
                remaining_capacity=0,
                alternatives=self.find_alternatives(instant, policy, ledger),
            )
        return AvailabilityDecision(
            AvailabilityOutcome.AVAILABLE,
            date=date,
            time_slot=time_slot,
            remaining_capacity=policy.capacity_per_slot - confirmed,
        )

    def is_slot_available(self, time_slot: str, policy: TenantPolicy, ledger: SlotLedger) -> bool:
        return not ledger.is_blocked(time_slot) and ledger.confirmed_count(time_slot) < policy.capacity_per_slot

    def find_alternatives(
        self,
        center: datetime,
        policy: TenantPolicy,
        ledger: SlotLedger,
        *,
        step_minutes: Optional[int] = None,
        max_steps: Optional[int] = None,
    ) -> Alternatives:
        """
        Nearest available slot before and after `center`, each searched on its own.
        Steps are taken on the local wall clock and never leave `center`'s calendar date.
        """
        step = timedelta(minutes=step_minutes if step_minutes is not None else self.step_minutes)
        limit = max_steps if max_steps is not None else self.max_steps
        wall = center.replace(tzinfo=None)
        return Alternatives(
            before=self._scan(wall, -step, limit, policy, ledger),
            after=self._scan(wall, step, limit, policy, ledger),
        )

    def _scan(
        self,
        wall: datetime,
        step: timedelta,
        limit: int,
        policy: TenantPolicy,
        ledger: SlotLedger,
    ) -> Optional[str]:
        candidate = wall
        for _ in range(limit):
            candidate = candidate + step
            if candidate.date() != wall.date():
                return None
            label = format_time(candidate)
            if self.is_slot_available(label, policy, ledger):
                return label
        return None
