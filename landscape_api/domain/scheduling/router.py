"""Calendar router - FastAPI endpoints for availability and time slots"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...cache import get_availability_cached, set_availability_cached
from ...database import get_db
from ...dependencies import get_availability_store
from .schemas import MarkSlotBookedRequest, TimeSlotsUpdate
from .service import CalendarService
from .store import AvailabilityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Calendar"])


def get_calendar_service(
    db: Session = Depends(get_db),
    store: AvailabilityStore = Depends(get_availability_store),
) -> CalendarService:
    """Dependency injection for CalendarService"""
    return CalendarService(db, store)


@router.get("/calendar-availability")
def get_calendar_availability(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    service: CalendarService = Depends(get_calendar_service),
):
    """Availability for every known date, optionally limited to [start, end]"""
    cached = get_availability_cached(start, end)
    if cached is not None:
        return cached

    availability = service.list_availability(start, end)
    set_availability_cached(availability, start, end)
    return availability


@router.get("/calendar-availability/{date}")
def get_calendar_day(date: str, service: CalendarService = Depends(get_calendar_service)):
    return service.get_day(date)


@router.put("/calendar-time-slots")
def update_calendar_time_slots(
    data: TimeSlotsUpdate, service: CalendarService = Depends(get_calendar_service)
):
    """Replace the time slots (and optionally business rules) of one date"""
    doc = service.replace_time_slots(
        data.date,
        [slot.model_dump() for slot in data.timeSlots],
        data.businessRules.model_dump() if data.businessRules else None,
    )
    return {"success": True, "date": doc["date"], "timeSlots": doc["timeSlots"]}


@router.put("/calendar-mark-slot-booked")
def mark_slot_booked(
    data: MarkSlotBookedRequest, service: CalendarService = Depends(get_calendar_service)
):
    doc = service.mark_slot_booked(data.date, data.timeSlot, data.bookingId)
    return {"success": True, "date": doc["date"], "timeSlots": doc["timeSlots"]}
