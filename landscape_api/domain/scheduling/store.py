"""Availability store - one CalendarDay document per date"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ...errors import SlotConflictError, ValidationFailed
from ...models import CalendarDay, TimeSlot
from .fallback import MemoryFallback
from .slots import format_time_for_display, generate_default_time_slots, sort_time_slots

logger = logging.getLogger(__name__)


def default_business_rules() -> dict:
    return {
        "isDayOff": False,
        "isBlocked": False,
        "blockReason": None,
        "weather": None,
        "specialNotes": None,
    }


def new_day_document(date: str) -> dict:
    """Day document for a date that has never been stored"""
    return {
        "date": date,
        "timeSlots": generate_default_time_slots(date),
        "businessRules": default_business_rules(),
        "metadata": {"createdAt": None, "updatedAt": None, "lastModifiedBy": None},
    }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _normalize_slot(slot: dict) -> dict:
    return {
        "time": slot["time"],
        "displayTime": slot.get("displayTime") or format_time_for_display(slot["time"]),
        "isAvailable": bool(slot.get("isAvailable", True)),
        "bookingId": slot.get("bookingId"),
    }


class AvailabilityStore:
    """
    Loads and persists calendar days.

    Reads and whole-day replacements fall back to the injected MemoryFallback
    when the database errors. Slot claims and releases are part of the
    caller's booking transaction and are never served from the fallback.
    """

    def __init__(self, db: Session, fallback: MemoryFallback):
        self.db = db
        self.fallback = fallback

    # ------------------------------------------------------------------
    # Document mapping
    # ------------------------------------------------------------------

    @staticmethod
    def to_document(day: CalendarDay) -> dict:
        return {
            "date": day.date,
            "timeSlots": sort_time_slots(
                [
                    {
                        "time": slot.time,
                        "displayTime": slot.display_time,
                        "isAvailable": slot.is_available,
                        "bookingId": slot.booking_id,
                    }
                    for slot in day.time_slots
                ]
            ),
            "businessRules": {**default_business_rules(), **(day.business_rules or {})},
            "metadata": {
                "createdAt": _iso(day.created_at),
                "updatedAt": _iso(day.updated_at),
                "lastModifiedBy": day.last_modified_by,
            },
        }

    @staticmethod
    def _merge(date: str, doc: dict, previous: Optional[dict], modified_by: str) -> dict:
        """Full replacement that carries forward fields the caller did not send"""
        now = datetime.now(timezone.utc).isoformat()
        previous = previous or {}
        previous_meta = previous.get("metadata") or {}
        return {
            "date": date,
            "timeSlots": sort_time_slots([_normalize_slot(s) for s in doc.get("timeSlots") or []]),
            "businessRules": doc.get("businessRules")
            or previous.get("businessRules")
            or default_business_rules(),
            "metadata": {
                "createdAt": previous_meta.get("createdAt") or now,
                "updatedAt": now,
                "lastModifiedBy": modified_by,
            },
        }

    def _write_durable(self, doc: dict) -> None:
        day = self.db.get(CalendarDay, doc["date"])
        if day is None:
            day = CalendarDay(date=doc["date"])
            self.db.add(day)

        day.business_rules = doc["businessRules"]
        day.last_modified_by = doc["metadata"].get("lastModifiedBy")

        # Update rows in place by time so the (date, time) constraint never sees duplicates
        existing = {slot.time: slot for slot in day.time_slots}
        wanted = {slot["time"]: slot for slot in doc["timeSlots"]}
        for time_value, slot_row in existing.items():
            if time_value not in wanted:
                day.time_slots.remove(slot_row)
        for time_value, slot in wanted.items():
            slot_row = existing.get(time_value)
            if slot_row is None:
                slot_row = TimeSlot(time=time_value)
                day.time_slots.append(slot_row)
            slot_row.display_time = slot["displayTime"]
            slot_row.is_available = slot["isAvailable"]
            slot_row.booking_id = slot["bookingId"]

        self.db.flush()

    def _promote_pending(self) -> None:
        """Push writes made during an outage back to the database"""
        for date, doc in self.fallback.pending():
            self._write_durable(doc)
            self.db.commit()
            self.fallback.mark_saved(date)
            logger.info(f"✅ Promoted calendar changes for {date} from fallback to database")

    def _outage(self, action: str, date: Optional[str], error: Exception) -> None:
        self.db.rollback()
        logger.warning(
            f"⚠️ Calendar store {action} failed for {date or 'all dates'}, "
            f"using in-memory fallback: {error}"
        )

    # ------------------------------------------------------------------
    # Document operations (fallback-capable)
    # ------------------------------------------------------------------

    def get(self, date: str) -> Optional[dict]:
        """Stored day document, or None when the date has never been written"""
        try:
            self._promote_pending()
            day = self.db.get(CalendarDay, date)
        except SQLAlchemyError as e:
            self._outage("read", date, e)
            return self.fallback.get(date)

        if day is None:
            return None
        doc = self.to_document(day)
        self.fallback.put(date, doc)
        return doc

    def list_days(self, start: Optional[str] = None, end: Optional[str] = None) -> list[dict]:
        try:
            self._promote_pending()
            query = self.db.query(CalendarDay).options(selectinload(CalendarDay.time_slots))
            if start:
                query = query.filter(CalendarDay.date >= start)
            if end:
                query = query.filter(CalendarDay.date <= end)
            days = query.order_by(CalendarDay.date).all()
        except SQLAlchemyError as e:
            self._outage("listing", None, e)
            return self.fallback.documents(start, end)

        docs = [self.to_document(day) for day in days]
        for doc in docs:
            self.fallback.put(doc["date"], doc)
        return docs

    def replace(self, date: str, doc: dict, modified_by: str = "admin") -> dict:
        """Insert-or-overwrite the whole day document"""
        try:
            self._promote_pending()
            previous_row = self.db.get(CalendarDay, date)
            previous = self.to_document(previous_row) if previous_row else None
            merged = self._merge(date, doc, previous, modified_by)
            self._write_durable(merged)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Rejected calendar update for {date}: {e}")
            raise ValidationFailed("Each time slot may appear only once per day") from e
        except SQLAlchemyError as e:
            self._outage("write", date, e)
            merged = self._merge(date, doc, self.fallback.get(date), modified_by)
            self.fallback.put(date, merged, pending=True)
            return merged

        self.fallback.discard(date)
        self.fallback.put(date, merged)
        logger.info(f"📅 Saved {len(merged['timeSlots'])} time slots for {date}")
        return merged

    # ------------------------------------------------------------------
    # Slot occupancy (transactional, durable only)
    # ------------------------------------------------------------------

    def _ensure_day(self, date: str) -> None:
        if self.db.get(CalendarDay, date) is not None:
            return

        day = CalendarDay(
            date=date, business_rules=default_business_rules(), last_modified_by="booking"
        )
        day.time_slots = [
            TimeSlot(time=slot["time"], display_time=slot["displayTime"], is_available=True)
            for slot in generate_default_time_slots(date)
        ]
        self.db.add(day)
        try:
            self.db.flush()
            logger.info(f"📅 Created calendar day {date} with default time slots")
        except IntegrityError:
            # Another request created the day first
            self.db.rollback()

    def claim_slot(self, date: str, time: str, booking_id: str) -> None:
        """
        Atomically mark one slot as held by a booking.

        The conditional UPDATE only matches a free slot (or one already held
        by the same booking), so of two concurrent claims only one succeeds.
        Does not commit.
        """
        self._promote_pending()
        self._ensure_day(date)

        result = self.db.execute(
            update(TimeSlot)
            .where(
                TimeSlot.date == date,
                TimeSlot.time == time,
                or_(TimeSlot.is_available.is_(True), TimeSlot.booking_id == booking_id),
            )
            .values(is_available=False, booking_id=booking_id)
            .execution_options(synchronize_session=False)
        )
        self.fallback.discard(date)

        if result.rowcount == 1:
            logger.info(f"📅 Slot {date} {time} claimed by booking {booking_id}")
            return

        offered = (
            self.db.query(TimeSlot.id).filter(TimeSlot.date == date, TimeSlot.time == time).first()
        )
        if offered is None:
            raise ValidationFailed(f"{format_time_for_display(time)} is not offered on {date}")
        raise SlotConflictError(
            f"The {format_time_for_display(time)} slot on {date} is already booked"
        )

    def release_slot(self, date: str, time: str, booking_id: str) -> bool:
        """Free a slot if, and only if, it is held by this booking. Does not commit."""
        result = self.db.execute(
            update(TimeSlot)
            .where(TimeSlot.date == date, TimeSlot.time == time, TimeSlot.booking_id == booking_id)
            .values(is_available=True, booking_id=None)
            .execution_options(synchronize_session=False)
        )
        self.fallback.discard(date)
        released = result.rowcount > 0
        if released:
            logger.info(f"📅 Slot {date} {time} released by booking {booking_id}")
        return released

    def delete_before(self, date: str) -> int:
        """Delete every day strictly before date. Does not commit."""
        days = self.db.query(CalendarDay).filter(CalendarDay.date < date).all()
        for day in days:
            self.db.delete(day)
        self.fallback.discard_before(date)
        return len(days)
