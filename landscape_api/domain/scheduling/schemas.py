"""Calendar schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_date_string, validate_time_string


class TimeSlotSchema(BaseModel):
    time: str
    displayTime: Optional[str] = None
    isAvailable: bool = True
    bookingId: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_string(v)


class BusinessRules(BaseModel):
    isDayOff: bool = False
    isBlocked: bool = False
    blockReason: Optional[str] = None
    weather: Optional[str] = None
    specialNotes: Optional[str] = None


class TimeSlotsUpdate(BaseModel):
    """Whole-day replacement of a date's slots sent by the admin calendar"""

    date: str
    timeSlots: list[TimeSlotSchema]
    businessRules: Optional[BusinessRules] = None

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return validate_date_string(v)

    @field_validator("timeSlots")
    @classmethod
    def validate_unique_times(cls, v):
        times = [slot.time for slot in v]
        if len(times) != len(set(times)):
            raise ValueError("each time may appear only once")
        return v


class MarkSlotBookedRequest(BaseModel):
    date: str
    timeSlot: str
    bookingId: str = Field(min_length=1, max_length=64)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return validate_date_string(v)

    @field_validator("timeSlot")
    @classmethod
    def validate_time_slot(cls, v):
        return validate_time_string(v)
