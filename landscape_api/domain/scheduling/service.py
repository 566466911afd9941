"""Calendar service - availability listings, slot edits and claims"""

import logging
from collections import defaultdict
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...cache import invalidate_availability_cache
from ...errors import NotFoundError, ValidationFailed
from ...shared.transaction import unit_of_work
from ...shared.validators import validate_date_string
from ..bookings.repository import BookingRepository
from ..bookings.status import ACTIVE_STATUSES
from .reconciler import reconcile_slots, summarize_availability
from .store import AvailabilityStore, new_day_document

logger = logging.getLogger(__name__)


def _parse_date(value: Optional[str], name: str) -> Optional[str]:
    if value is None:
        return None
    try:
        return validate_date_string(value)
    except ValueError as e:
        raise ValidationFailed(f"{name}: {e}") from e


def day_view(doc: dict, bookings: Optional[int] = None) -> dict:
    """Shape of one date in the availability responses"""
    availability = summarize_availability(doc["timeSlots"])
    return {
        "date": doc["date"],
        "bookings": availability["currentBookings"] if bookings is None else bookings,
        "availability": availability,
        "businessRules": doc["businessRules"],
    }


class CalendarService:
    """Service layer for the booking calendar"""

    def __init__(self, db: Session, store: AvailabilityStore):
        self.db = db
        self.store = store
        self.booking_repo = BookingRepository()

    def _bookings_by_date(self, start: Optional[str], end: Optional[str]) -> Optional[dict]:
        """Active bookings grouped by date, or None when they cannot be read"""
        try:
            bookings = self.booking_repo.list_holding_slots(
                self.db, [status.value for status in ACTIVE_STATUSES], start, end
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Could not load bookings, serving slots unreconciled: {e}")
            return None

        grouped = defaultdict(list)
        for booking in bookings:
            grouped[booking.service_date].append(booking)
        return grouped

    def list_availability(
        self, start: Optional[str] = None, end: Optional[str] = None
    ) -> list[dict]:
        """
        Availability for every stored date in range, plus any date a booking
        points at. Each day's slots are rebuilt from its bookings first; days
        whose slots drifted (or that only existed implicitly) are written back.
        """
        start = _parse_date(start, "start")
        end = _parse_date(end, "end")

        docs = {doc["date"]: doc for doc in self.store.list_days(start, end)}
        bookings_by_date = self._bookings_by_date(start, end)
        if bookings_by_date is None:
            return [day_view(docs[date]) for date in sorted(docs)]

        results = []
        for date in sorted(set(docs) | set(bookings_by_date)):
            bookings = bookings_by_date.get(date, [])
            doc = docs.get(date) or new_day_document(date)
            reconciled = reconcile_slots(doc["timeSlots"], bookings)
            if date not in docs or reconciled != doc["timeSlots"]:
                logger.info(f"🔄 Reconciled time slots for {date} with {len(bookings)} bookings")
                doc = self.store.replace(
                    date,
                    {"timeSlots": reconciled, "businessRules": doc["businessRules"]},
                    modified_by="reconciliation",
                )
            results.append(day_view(doc, len(bookings)))

        return results

    def get_day(self, date: str) -> dict:
        """One date; an unknown date gets default slots without being stored"""
        date = _parse_date(date, "date")
        days = self.list_availability(date, date)
        if days:
            return days[0]
        return day_view(new_day_document(date), 0)

    def replace_time_slots(
        self, date: str, slots: list[dict], business_rules: Optional[dict] = None
    ) -> dict:
        """Admin edit of a whole day; occupancy always comes from the bookings"""
        bookings_by_date = self._bookings_by_date(date, date)
        if bookings_by_date is not None:
            slots = reconcile_slots(slots, bookings_by_date.get(date, []))

        doc = self.store.replace(
            date, {"timeSlots": slots, "businessRules": business_rules}, modified_by="admin"
        )
        invalidate_availability_cache()
        return doc

    def mark_slot_booked(self, date: str, time: str, booking_id: str) -> dict:
        """
        Point a slot at the active booking scheduled for it, e.g. to repair a
        day whose slot state drifted. Marks that no booking backs would be
        undone by the next reconciliation, so they are refused.
        """
        booking = self.booking_repo.get_by_booking_id(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.status not in {status.value for status in ACTIVE_STATUSES}:
            raise ValidationFailed(f"Booking {booking_id} is {booking.status} and holds no slot")
        if (booking.service_date, booking.time_slot) != (date, time):
            raise ValidationFailed(
                f"Booking {booking_id} is scheduled for {booking.service_date} "
                f"{booking.time_slot}, not {date} {time}"
            )

        with unit_of_work(self.db, f"mark {date} {time} booked"):
            self.store.claim_slot(date, time, booking_id)
        invalidate_availability_cache()
        return self.store.get(date) or new_day_document(date)
