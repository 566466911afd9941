"""Booking service - Business logic for booking operations"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ... import email_service
from ...cache import invalidate_availability_cache
from ...config import DEFAULT_DEPOSIT_AMOUNT
from ...errors import (
    AppError,
    DuplicateBookingError,
    NotFoundError,
    SlotConflictError,
    StoreUnavailableError,
    ValidationFailed,
)
from ...models import Booking
from ...services import square_service
from ...shared.transaction import unit_of_work
from ...shared.validators import validate_date_string
from ..rates.service import RateService
from ..scheduling.store import AvailabilityStore
from .repository import BookingRepository
from .schemas import (
    BookingCreate,
    BookingUpdate,
    ChargeCompleteRequest,
    CreateBookingWithPaymentRequest,
    PaymentInfo,
    StatusUpdate,
)
from .status import (
    ACTIVE_STATUSES,
    BookingStatus,
    advance_to,
    history_entry,
    transition,
)

logger = logging.getLogger(__name__)


def new_booking_id() -> str:
    return uuid.uuid4().hex


def default_payment() -> dict:
    return {
        "depositAmount": None,
        "depositPaid": False,
        "depositPaymentId": None,
        "customerId": None,
        "cardId": None,
        "finalAmount": None,
        "finalPaid": False,
        "finalPaymentId": None,
        "paymentMethod": None,
    }


def final_payment_key(booking_id: str, amount_cents: int) -> str:
    """Stable Square idempotency key for a booking's final charge (max 45 chars)"""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"final-payment/{booking_id}/{amount_cents}"))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def booking_document(booking: Booking) -> dict:
    """API representation of a booking"""
    return {
        "bookingId": booking.booking_id,
        "customer": booking.customer,
        "service": booking.service,
        "status": {"current": booking.status, "history": booking.status_history or []},
        "payment": {**default_payment(), **(booking.payment or {})},
        "metadata": {
            "createdAt": _iso(booking.created_at),
            "updatedAt": _iso(booking.updated_at),
            "createdBy": booking.created_by,
            "internalNotes": booking.internal_notes,
        },
    }


def calculate_final_totals(
    materials: float, service_hours: float, hourly_rate: float, deposit: float
) -> dict:
    """Final bill: materials plus labor, less the deposit, never negative"""
    labor_cost = service_hours * hourly_rate
    subtotal = materials + labor_cost
    return {
        "materials": round(materials, 2),
        "serviceHours": service_hours,
        "hourlyRate": hourly_rate,
        "laborCost": round(labor_cost, 2),
        "subtotal": round(subtotal, 2),
        "deposit": round(deposit, 2),
        "finalAmount": round(max(0.0, subtotal - deposit), 2),
    }


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session, store: AvailabilityStore, rates: Optional[RateService] = None):
        self.db = db
        self.store = store
        self.rates = rates or RateService(db)
        self.repo = BookingRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> Booking:
        try:
            booking = self.repo.get_by_booking_id(self.db, booking_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to load booking {booking_id}: {e}")
            raise StoreUnavailableError() from e
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def list_bookings(
        self,
        date: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        email: Optional[str] = None,
    ) -> list[Booking]:
        if date:
            try:
                date = validate_date_string(date)
            except ValueError as e:
                raise ValidationFailed(f"date: {e}") from e
        try:
            return self.repo.list_bookings(
                self.db, date=date, status=status.value if status else None, email=email
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to list bookings: {e}")
            raise StoreUnavailableError() from e

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    def create_booking(self, data: BookingCreate, payment: Optional[PaymentInfo] = None) -> Booking:
        """
        Write a new pending booking and claim its time slot in one transaction.

        The hourly rate for the crew size is copied onto the booking so later
        rate changes never reprice it.
        """
        booking_id = data.bookingId or new_booking_id()
        customer = data.customer.model_dump()
        service = data.service.model_dump()
        hourly_rate = self.rates.hourly_rate_for(service["crewSize"])
        service["hourlyRate"] = hourly_rate

        payment_doc = default_payment()
        if payment:
            payment_doc.update(
                depositAmount=payment.amount,
                depositPaid=True,
                depositPaymentId=payment.paymentId,
                customerId=payment.customerId,
                cardId=payment.cardId,
                paymentMethod="card",
            )

        logger.info(f"📥 Creating booking {booking_id} for {service['date']} {service['timeSlot']}")
        with unit_of_work(self.db, f"create booking {booking_id}"):
            if self.repo.get_by_booking_id(self.db, booking_id):
                raise DuplicateBookingError()
            self.store.claim_slot(service["date"], service["timeSlot"], booking_id)
            booking = Booking(
                booking_id=booking_id,
                customer=customer,
                service=service,
                payment=payment_doc,
                status=BookingStatus.PENDING.value,
                status_history=[
                    history_entry(BookingStatus.PENDING, "Initial booking submitted")
                ],
                service_date=service["date"],
                time_slot=service["timeSlot"],
                customer_email=customer["email"],
                hourly_rate=hourly_rate,
                created_by=data.createdBy,
                internal_notes=data.internalNotes,
            )
            self.repo.add(self.db, booking)

        invalidate_availability_cache()
        logger.info(f"✅ Booking {booking_id} created at ${hourly_rate:.2f}/hour")
        return booking

    def update_booking(self, booking_id: str, data: BookingUpdate) -> Booking:
        booking = self.get_booking(booking_id)
        current = BookingStatus(booking.status)
        history = list(booking.status_history or [])

        target = data.status or current
        if target != current:
            history = transition(current, target, history, data.statusNotes or "Updated by admin")

        old_service = booking.service or {}
        service = data.service.model_dump()
        # Keep the rate snapshot unless the crew changed
        if service["crewSize"] == old_service.get("crewSize") and old_service.get("hourlyRate"):
            service["hourlyRate"] = old_service["hourlyRate"]
        else:
            service["hourlyRate"] = self.rates.hourly_rate_for(service["crewSize"])

        old_slot = (booking.service_date, booking.time_slot)
        new_slot = (service["date"], service["timeSlot"])
        held = current in ACTIVE_STATUSES
        holds = target in ACTIVE_STATUSES

        with unit_of_work(self.db, f"update booking {booking_id}"):
            if holds and (new_slot != old_slot or not held):
                self.store.claim_slot(*new_slot, booking_id)
            if held and (new_slot != old_slot or not holds):
                self.store.release_slot(*old_slot, booking_id)

            booking.customer = data.customer.model_dump()
            booking.service = service
            booking.service_date, booking.time_slot = new_slot
            booking.customer_email = booking.customer["email"]
            booking.hourly_rate = service["hourlyRate"]
            booking.status = target.value
            booking.status_history = history
            if data.internalNotes is not None:
                booking.internal_notes = data.internalNotes

        if new_slot != old_slot or target != current:
            invalidate_availability_cache()
        logger.info(f"✅ Booking {booking_id} updated")
        return booking

    def set_status(self, booking_id: str, data: StatusUpdate) -> Booking:
        booking = self.get_booking(booking_id)
        current = BookingStatus(booking.status)
        history = transition(current, data.status, booking.status_history or [], data.notes)

        with unit_of_work(self.db, f"change status of booking {booking_id}"):
            if data.status == BookingStatus.CANCELLED:
                self.store.release_slot(booking.service_date, booking.time_slot, booking_id)
            booking.status = data.status.value
            booking.status_history = history

        if data.status == BookingStatus.CANCELLED:
            invalidate_availability_cache()
        logger.info(f"🔁 Booking {booking_id}: {current.value} -> {data.status.value}")
        return booking

    def delete_booking(self, booking_id: str) -> dict:
        booking = self.get_booking(booking_id)
        date, time_slot = booking.service_date, booking.time_slot

        with unit_of_work(self.db, f"delete booking {booking_id}"):
            self.store.release_slot(date, time_slot, booking_id)
            self.repo.delete(self.db, booking)

        invalidate_availability_cache()
        logger.info(f"🗑️ Booking {booking_id} deleted, {date} {time_slot} is free again")
        return {"success": True, "bookingId": booking_id, "date": date, "timeSlot": time_slot}

    # ------------------------------------------------------------------
    # Payments and emails
    # ------------------------------------------------------------------

    async def send_booking_emails(self, booking: Booking) -> Optional[dict]:
        """Confirmation and business notification; failures are only logged"""
        try:
            return await email_service.send_booking_emails(booking_document(booking))
        except Exception as e:
            logger.error(f"❌ Booking emails failed for {booking.booking_id}: {e}")
            return None

    async def _refund_deposit(self, payment: PaymentInfo, reason: str) -> bool:
        try:
            await square_service.refund_payment(
                payment.paymentId,
                square_service.to_cents(payment.amount),
                payment.currency,
                reason,
            )
            return True
        except Exception as e:
            logger.error(f"❌ Refund of payment {payment.paymentId} failed: {e}")
            return False

    async def create_with_payment(self, data: CreateBookingWithPaymentRequest) -> Booking:
        """
        Record a booking whose deposit has already been charged.

        Whatever stops the booking from being written (slot taken or no longer
        offered, duplicate id, storage outage) the deposit is refunded, and
        the error is re-raised with refunded/refundNeeded so the client knows
        whether a manual refund is still needed.
        """
        try:
            booking = self.create_booking(data.bookingData, payment=data.paymentInfo)
        except AppError as e:
            logger.warning(
                f"⚠️ Booking failed after payment {data.paymentInfo.paymentId} "
                f"({e.code}), refunding deposit"
            )
            reason = (
                "Time slot no longer available"
                if isinstance(e, SlotConflictError)
                else "Booking could not be created"
            )
            refunded = await self._refund_deposit(data.paymentInfo, reason)
            raise type(e)(
                e.message, **e.extra, refunded=refunded, refundNeeded=not refunded
            ) from e

        await self.send_booking_emails(booking)
        return booking

    async def charge_and_complete(self, booking_id: str, data: ChargeCompleteRequest) -> dict:
        """
        Bill the remaining balance, mark the job completed and remove it.

        Final amount = materials + hours x hourly rate - deposit (floored at 0).
        The card on file is charged only when collectPayment is set and there
        is something left to pay, under an idempotency key derived from the
        booking and amount. The charge is recorded (finalPaid) before the
        booking is removed, so retrying after a failed delete does not bill the
        card again. The review email is best effort; completed bookings are
        deleted rather than archived.
        """
        booking = self.get_booking(booking_id)
        current = BookingStatus(booking.status)
        history = advance_to(
            current,
            BookingStatus.COMPLETED,
            booking.status_history or [],
            "Service completed and final payment processed",
        )

        service = booking.service or {}
        payment = {**default_payment(), **(booking.payment or {})}
        hourly_rate = service.get("hourlyRate") or booking.hourly_rate
        if not hourly_rate:
            hourly_rate = self.rates.hourly_rate_for(service.get("crewSize"))
        deposit = payment["depositAmount"]
        if deposit is None:
            deposit = DEFAULT_DEPOSIT_AMOUNT

        totals = calculate_final_totals(
            data.materialsCost, data.serviceHours, float(hourly_rate), float(deposit)
        )
        logger.info(f"💵 Final totals for booking {booking_id}: {totals}")

        final_payment = None
        if payment["finalPaid"]:
            logger.info(f"💳 Final payment for booking {booking_id} already collected")
            if payment.get("finalPaymentId"):
                final_payment = {"id": payment["finalPaymentId"]}
        elif data.collectPayment and totals["finalAmount"] > 0:
            if not (payment["customerId"] and payment["cardId"]):
                raise ValidationFailed("No card on file for this booking")
            amount_cents = square_service.to_cents(totals["finalAmount"])
            charge = await square_service.charge_card_on_file(
                payment["customerId"],
                payment["cardId"],
                amount_cents,
                description=f"Final payment for booking {booking_id} on {booking.service_date}",
                idempotency_key=final_payment_key(booking_id, amount_cents),
            )
            final_payment = charge["payment"]
            payment.update(
                finalAmount=totals["finalAmount"],
                finalPaid=True,
                finalPaymentId=final_payment["id"],
            )

        # Charge state must be durable before anything after it can fail
        with unit_of_work(self.db, f"record completion of booking {booking_id}"):
            booking.payment = payment
            booking.status = BookingStatus.COMPLETED.value
            booking.status_history = history

        customer = booking.customer or {}
        review_email_sent = False
        try:
            result = await email_service.send_review_request(
                customer.get("email"), customer.get("name"), totals
            )
            review_email_sent = not result.get("skipped")
        except Exception as e:
            logger.error(f"❌ Review request email failed for booking {booking_id}: {e}")

        with unit_of_work(self.db, f"complete booking {booking_id}"):
            self.store.release_slot(booking.service_date, booking.time_slot, booking_id)
            self.repo.delete(self.db, booking)

        invalidate_availability_cache()
        logger.info(f"✅ Booking {booking_id} completed and removed")
        return {
            "success": True,
            "bookingId": booking_id,
            "status": BookingStatus.COMPLETED.value,
            "statusHistory": history,
            "totals": totals,
            "payment": final_payment,
            "reviewEmailSent": review_email_sent,
        }
