"""
Administrative cleanup of past dates
Everything strictly before today (server local date) is purged
"""
import logging
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..cache import invalidate_availability_cache
from ..database import get_db
from ..dependencies import get_availability_store
from ..domain.bookings.repository import BookingRepository
from ..domain.scheduling.store import AvailabilityStore
from ..shared.transaction import unit_of_work

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cleanup", tags=["cleanup"])


@router.delete("/past-dates")
def cleanup_past_dates(
    db: Session = Depends(get_db),
    store: AvailabilityStore = Depends(get_availability_store),
):
    """Delete past bookings and past calendar days"""
    today = date.today().isoformat()
    with unit_of_work(db, "clean up past dates"):
        deleted_bookings = BookingRepository.delete_before(db, today)
        deleted_days = store.delete_before(today)

    invalidate_availability_cache()
    logger.info(f"🧹 Removed {deleted_bookings} bookings and {deleted_days} calendar days before {today}")
    return {
        "success": True,
        "before": today,
        "deletedBookings": deleted_bookings,
        "deletedCalendarDays": deleted_days,
    }


@router.delete("/past-calendar-only")
def cleanup_past_calendar(store: AvailabilityStore = Depends(get_availability_store)):
    """Delete past calendar days, keeping booking history"""
    today = date.today().isoformat()
    with unit_of_work(store.db, "clean up past calendar days"):
        deleted_days = store.delete_before(today)

    invalidate_availability_cache()
    logger.info(f"🧹 Removed {deleted_days} calendar days before {today}")
    return {"success": True, "before": today, "deletedBookings": 0, "deletedCalendarDays": deleted_days}
