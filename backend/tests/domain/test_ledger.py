from tablebook.domain.ledger import SlotLedger, SlotRecord, normalize_slot, parse_status
from tablebook.models import ReservationStatus


def _record(record_id: int, time_slot: str, status: str, tenant_id: str = "bistro") -> SlotRecord:
    return SlotRecord(id=record_id, tenant_id=tenant_id, date="2025-07-06", time_slot=time_slot, status=status)


def test_parse_status_accepts_aliases_and_whitespace() -> None:
    assert parse_status(" Confirmed ") == ReservationStatus.CONFIRMED
    assert parse_status("cancelled") == ReservationStatus.CANCELED
    assert parse_status("unavailable") == ReservationStatus.BLOCKED
    assert parse_status("") is None
    assert parse_status(None) is None
    assert parse_status(3) is None


def test_normalize_slot_requires_two_digit_hours() -> None:
    assert normalize_slot(" 18:00 ") == "18:00"
    assert normalize_slot("8:00") is None
    assert normalize_slot("18:60") is None


def test_matching_ignores_other_tenants() -> None:
    ledger = SlotLedger(
        "bistro",
        "2025-07-06",
        [_record(1, "18:00", "confirmed"), _record(2, "18:00", "blocked", tenant_id="diner")],
    )
    assert [r.id for r in ledger.matching("18:00")] == [1]
    assert ledger.is_blocked("18:00") is False


def test_excluding_drops_one_record_without_mutating_snapshot() -> None:
    ledger = SlotLedger("bistro", "2025-07-06", [_record(1, "18:00", "confirmed"), _record(2, "18:00", "confirmed")])
    trimmed = ledger.excluding(1)
    assert trimmed.confirmed_count("18:00") == 1
    assert ledger.confirmed_count("18:00") == 2
    assert len(trimmed) == 1
