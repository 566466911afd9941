"""Booking domain schemas - Pydantic models for validation"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import (
    validate_date_string,
    validate_email,
    validate_time_string,
    validate_us_phone,
)
from .status import BookingStatus


class CustomerInfo(BaseModel):
    name: str = Field(min_length=1)
    email: str
    phone: str
    address: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def validate_customer_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_us_phone(v)


class ServiceDetails(BaseModel):
    """Requested service; hourlyRate is filled in by the server at booking time"""

    date: str
    timeSlot: str
    crewSize: Literal[2, 3, 4]
    services: list[str] = Field(default_factory=list)
    yardAcreage: Optional[str] = None
    preferredHour: Optional[str] = None
    notes: str = ""
    estimatedHours: Optional[float] = None
    totalCost: Optional[float] = None

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return validate_date_string(v)

    @field_validator("timeSlot")
    @classmethod
    def validate_time_slot(cls, v):
        return validate_time_string(v)


class PaymentInfo(BaseModel):
    """Deposit already taken through Square before the booking is written"""

    paymentId: str
    amount: float = Field(ge=0)
    currency: str = "USD"
    customerId: Optional[str] = None
    cardId: Optional[str] = None


class BookingCreate(BaseModel):
    bookingId: Optional[str] = Field(default=None, max_length=64)
    customer: CustomerInfo
    service: ServiceDetails
    createdBy: str = "customer"
    internalNotes: Optional[str] = None


class BookingUpdate(BaseModel):
    """Full replacement of the customer and service sub-documents"""

    customer: CustomerInfo
    service: ServiceDetails
    status: Optional[BookingStatus] = None
    statusNotes: str = ""
    internalNotes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: BookingStatus
    notes: str = ""


class ChargeCompleteRequest(BaseModel):
    materialsCost: float = Field(ge=0)
    serviceHours: float = Field(ge=0)
    collectPayment: bool = True


class CreateBookingWithPaymentRequest(BaseModel):
    bookingData: BookingCreate
    paymentInfo: PaymentInfo


class SendEmailRequest(BaseModel):
    bookingData: dict

    @field_validator("bookingData")
    @classmethod
    def validate_booking_data(cls, v):
        customer = v.get("customer") or {}
        if not customer.get("email"):
            raise ValueError("customer.email is required")
        return v
