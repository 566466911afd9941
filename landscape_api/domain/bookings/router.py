"""Booking router - FastAPI endpoints for booking operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ... import email_service
from ...database import get_db
from ...dependencies import get_availability_store
from ...errors import AppError
from ..rates.service import RateService
from ..scheduling.store import AvailabilityStore
from .schemas import (
    BookingCreate,
    BookingUpdate,
    ChargeCompleteRequest,
    CreateBookingWithPaymentRequest,
    SendEmailRequest,
    StatusUpdate,
)
from .service import BookingService, booking_document
from .status import BookingStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Bookings"])


def get_booking_service(
    db: Session = Depends(get_db),
    store: AvailabilityStore = Depends(get_availability_store),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, store, RateService(db))


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("/bookings")
def list_bookings(
    date: Optional[str] = Query(None),
    status: Optional[BookingStatus] = Query(None),
    email: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """List bookings, optionally filtered by service date, status or customer email"""
    return [booking_document(b) for b in service.list_bookings(date, status, email)]


@router.get("/bookings/{booking_id}")
def get_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return booking_document(service.get_booking(booking_id))


@router.post("/bookings")
async def create_booking(
    data: BookingCreate, service: BookingService = Depends(get_booking_service)
):
    """Create a booking without payment (admin entry or pay-later bookings)"""
    booking = service.create_booking(data)
    await service.send_booking_emails(booking)
    return {"success": True, "booking": booking_document(booking)}


@router.put("/bookings/{booking_id}")
def update_booking(
    booking_id: str, data: BookingUpdate, service: BookingService = Depends(get_booking_service)
):
    booking = service.update_booking(booking_id, data)
    return {"success": True, "booking": booking_document(booking)}


@router.patch("/bookings/{booking_id}/status")
def update_booking_status(
    booking_id: str, data: StatusUpdate, service: BookingService = Depends(get_booking_service)
):
    booking = service.set_status(booking_id, data)
    return {"success": True, "booking": booking_document(booking)}


@router.delete("/bookings/{booking_id}")
def delete_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    """Delete a booking and free its time slot"""
    return service.delete_booking(booking_id)


# ============================================================================
# PAYMENT FLOWS
# ============================================================================


@router.post("/bookings/{booking_id}/charge-complete")
async def charge_and_complete(
    booking_id: str,
    data: ChargeCompleteRequest,
    service: BookingService = Depends(get_booking_service),
):
    return await service.charge_and_complete(booking_id, data)


@router.post("/create-booking-with-payment")
async def create_booking_with_payment(
    data: CreateBookingWithPaymentRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Store a booking whose deposit was charged by /api/square/create-payment"""
    booking = await service.create_with_payment(data)
    return {"success": True, "booking": booking_document(booking)}


# ============================================================================
# EMAIL
# ============================================================================


@router.post("/send-email")
async def send_booking_email(data: SendEmailRequest):
    """Send the confirmation and business notification for an existing booking document"""
    try:
        result = await email_service.send_booking_emails(data.bookingData)
    except Exception as e:
        logger.error(f"❌ Failed to send booking emails: {e}")
        raise AppError("Failed to send email") from e
    if all("error" in entry for entry in result.values()):
        raise AppError("Failed to send email")
    return {"success": True, **result}
