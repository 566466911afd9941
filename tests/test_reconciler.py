"""Tests for rebuilding slot occupancy from bookings."""

from landscape_api.domain.scheduling.reconciler import reconcile_slots, summarize_availability
from landscape_api.domain.scheduling.slots import generate_default_time_slots


def _booking(booking_id: str, time_slot: str) -> dict:
    return {"bookingId": booking_id, "service": {"date": "2025-08-29", "timeSlot": time_slot}}


def _slot(slots: list[dict], time: str) -> dict:
    return next(s for s in slots if s["time"] == time)


class TestReconcileSlots:
    def test_marks_booked_slots(self):
        slots = reconcile_slots(generate_default_time_slots(), [_booking("b1", "13:00")])
        assert _slot(slots, "13:00") == {
            "time": "13:00",
            "displayTime": "1PM",
            "isAvailable": False,
            "bookingId": "b1",
        }
        assert _slot(slots, "09:00")["isAvailable"] is True

    def test_stale_claims_are_cleared(self):
        stale = generate_default_time_slots()
        stale[0].update(isAvailable=False, bookingId="deleted-booking")

        slots = reconcile_slots(stale, [])
        assert all(s["isAvailable"] and s["bookingId"] is None for s in slots)

    def test_input_is_not_modified(self):
        original = generate_default_time_slots()
        reconcile_slots(original, [_booking("b1", "09:00")])
        assert original[0]["isAvailable"] is True

    def test_unknown_time_is_ignored(self):
        slots = reconcile_slots(generate_default_time_slots(), [_booking("b1", "10:00")])
        assert all(s["isAvailable"] for s in slots)

    def test_later_booking_wins_double_claim(self):
        slots = reconcile_slots(
            generate_default_time_slots(),
            [_booking("first", "09:00"), _booking("second", "09:00")],
        )
        assert _slot(slots, "09:00")["bookingId"] == "second"

    def test_idempotent(self):
        bookings = [_booking("b1", "09:00"), _booking("b2", "15:00")]
        once = reconcile_slots(generate_default_time_slots(), bookings)
        assert reconcile_slots(once, bookings) == once

    def test_accepts_booking_rows(self):
        class Row:
            booking_id = "row-1"
            time_slot = "15:00"

        slots = reconcile_slots(generate_default_time_slots(), [Row()])
        assert _slot(slots, "15:00")["bookingId"] == "row-1"


class TestSummarizeAvailability:
    def test_counts(self):
        slots = reconcile_slots(generate_default_time_slots(), [_booking("b1", "09:00")])
        summary = summarize_availability(slots)
        assert summary["maxBookings"] == 3
        assert summary["currentBookings"] == 1
        assert summary["isAvailable"] is True

    def test_fully_booked_day(self):
        bookings = [_booking(f"b{i}", t) for i, t in enumerate(("09:00", "13:00", "15:00"))]
        summary = summarize_availability(reconcile_slots(generate_default_time_slots(), bookings))
        assert summary["currentBookings"] == 3
        assert summary["isAvailable"] is False

    def test_empty_day(self):
        summary = summarize_availability([])
        assert summary == {
            "maxBookings": 0,
            "currentBookings": 0,
            "isAvailable": False,
            "timeSlots": [],
        }
