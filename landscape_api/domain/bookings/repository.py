"""Booking repository - Database operations for bookings"""

from collections.abc import Iterable
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_by_booking_id(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.booking_id == booking_id).first()

    @staticmethod
    def list_bookings(
        db: Session,
        date: Optional[str] = None,
        status: Optional[str] = None,
        email: Optional[str] = None,
    ) -> list[Booking]:
        """List bookings with optional filters on service date, status and customer email"""
        query = db.query(Booking)

        if date:
            query = query.filter(Booking.service_date == date)
        if status:
            query = query.filter(Booking.status == status)
        if email:
            query = query.filter(Booking.customer_email == email.strip().lower())

        return query.order_by(Booking.service_date, Booking.time_slot, Booking.id).all()

    @staticmethod
    def list_holding_slots(
        db: Session,
        statuses: Iterable[str],
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> list[Booking]:
        """Bookings that occupy a slot, oldest first within each date"""
        query = db.query(Booking).filter(Booking.status.in_(list(statuses)))
        if start:
            query = query.filter(Booking.service_date >= start)
        if end:
            query = query.filter(Booking.service_date <= end)
        return query.order_by(Booking.service_date, Booking.id).all()

    @staticmethod
    def add(db: Session, booking: Booking) -> Booking:
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def delete(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.flush()

    @staticmethod
    def delete_before(db: Session, date: str) -> int:
        """Delete bookings whose service date is strictly before date"""
        return (
            db.query(Booking)
            .filter(Booking.service_date < date)
            .delete(synchronize_session=False)
        )
