"""Recompute slot occupancy for a day from the bookings that reference it"""

import logging
from collections.abc import Iterable

from .slots import has_available_slots, sort_time_slots

logger = logging.getLogger(__name__)


def _booking_ref(booking) -> tuple[str, str]:
    """(booking id, time slot) from a Booking row or a booking document"""
    if isinstance(booking, dict):
        return booking["bookingId"], booking["service"]["timeSlot"]
    return booking.booking_id, booking.time_slot


def reconcile_slots(slots: list[dict], bookings: Iterable) -> list[dict]:
    """
    Reset every slot to free, then mark the slot of each booking as taken.

    Bookings are applied in input order, so when two bookings name the same
    time the later one holds the slot. A booking whose time is not offered on
    the day is left out of slot state. The input list is not modified.
    """
    reconciled = [{**slot, "isAvailable": True, "bookingId": None} for slot in slots]
    by_time = {slot["time"]: slot for slot in reconciled}

    for booking in bookings:
        booking_id, time_slot = _booking_ref(booking)
        slot = by_time.get(time_slot)
        if slot is None:
            logger.warning(
                f"⚠️ Booking {booking_id} references slot {time_slot} which is not offered"
            )
            continue
        if slot["bookingId"] is not None:
            logger.warning(
                f"⚠️ Slot {time_slot} claimed by both {slot['bookingId']} and {booking_id}"
            )
        slot["isAvailable"] = False
        slot["bookingId"] = booking_id

    return reconciled


def summarize_availability(slots: list[dict]) -> dict:
    """Availability block returned by the calendar endpoints"""
    ordered = sort_time_slots(slots)
    return {
        "maxBookings": len(ordered),
        "currentBookings": sum(1 for slot in ordered if not slot.get("isAvailable")),
        "isAvailable": has_available_slots(ordered),
        "timeSlots": ordered,
    }
