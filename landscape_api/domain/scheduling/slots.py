"""
Time slot generation and read-only views over a day's slot list.

Slots are plain dicts in the stored document shape:
    {"time": "09:00", "displayTime": "9AM", "isAvailable": True, "bookingId": None}
"""

from datetime import date
from typing import Optional, Union

# Every day offers the same three slots, regardless of weekday
DEFAULT_SLOT_TIMES = ("09:00", "13:00", "15:00")

DISPLAY_TO_24H = {
    "9AM": "09:00",
    "1PM": "13:00",
    "3PM": "15:00",
    "12AM": "00:00",
    "12PM": "12:00",
}


def make_slot(time24: str, display_time: Optional[str] = None) -> dict:
    return {
        "time": time24,
        "displayTime": display_time or format_time_for_display(time24),
        "isAvailable": True,
        "bookingId": None,
    }


def generate_default_time_slots(day: Union[date, str, None] = None) -> list[dict]:
    """Default slots used when no administrator override exists for a date"""
    return [make_slot(t) for t in DEFAULT_SLOT_TIMES]


def format_time_for_display(time24: str) -> str:
    """
    Convert 24hr time to the short display label.

    "00:00" -> "12AM", "09:00" -> "9AM", "12:00" -> "12PM", "15:00" -> "3PM".
    Minutes are not rendered; slots are only ever created on the hour.
    """
    hour = int(time24.split(":")[0])

    if hour == 0:
        return "12AM"
    if hour < 12:
        return f"{hour}AM"
    if hour == 12:
        return "12PM"
    return f"{hour - 12}PM"


def display_time_to_24h(display_time: str) -> str:
    """Convert a display label like "3PM" back to "15:00"; unknown labels pass through"""
    label = display_time.strip().upper()
    if label in DISPLAY_TO_24H:
        return DISPLAY_TO_24H[label]

    suffix = label[-2:]
    hour_part = label[:-2]
    if suffix not in ("AM", "PM") or not hour_part.isdigit():
        return display_time

    hour = int(hour_part) % 12
    if suffix == "PM":
        hour += 12
    return f"{hour:02d}:00"


def sort_time_slots(slots: Optional[list[dict]]) -> list[dict]:
    """Sort by time; HH:MM is zero-padded so string order is time order"""
    if not slots:
        return []
    return sorted(slots, key=lambda slot: slot["time"])


def available_slots(slots: Optional[list[dict]]) -> list[dict]:
    if not slots:
        return []
    return sort_time_slots([slot for slot in slots if slot.get("isAvailable")])


def has_available_slots(slots: Optional[list[dict]]) -> bool:
    """Whether a calendar date is bookable at all"""
    return bool(slots) and any(slot.get("isAvailable") for slot in slots)


def is_slot_available(slots: Optional[list[dict]], time24: str) -> bool:
    for slot in slots or []:
        if slot["time"] == time24:
            return bool(slot.get("isAvailable"))
    return False


def book_time_slot(slots: list[dict], time24: str, booking_id: str) -> list[dict]:
    return [
        {**slot, "isAvailable": False, "bookingId": booking_id} if slot["time"] == time24 else slot
        for slot in slots
    ]


def release_time_slot(slots: list[dict], time24: str) -> list[dict]:
    return [
        {**slot, "isAvailable": True, "bookingId": None} if slot["time"] == time24 else slot
        for slot in slots
    ]
