from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class CalendarDay(Base):
    __tablename__ = "calendar_days"

    date = Column(String(10), primary_key=True)  # YYYY-MM-DD
    # isDayOff, isBlocked, blockReason, weather, specialNotes - advisory only
    business_rules = Column(JSON, nullable=True)
    last_modified_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    time_slots = relationship(
        "TimeSlot",
        back_populates="day",
        cascade="all, delete-orphan",
        order_by="TimeSlot.time",
    )


class TimeSlot(Base):
    __tablename__ = "time_slots"
    __table_args__ = (UniqueConstraint("date", "time", name="uq_time_slots_date_time"),)

    id = Column(Integer, primary_key=True, index=True)
    date = Column(
        String(10), ForeignKey("calendar_days.date", ondelete="CASCADE"), nullable=False, index=True
    )
    time = Column(String(5), nullable=False)  # zero-padded HH:MM
    display_time = Column(String(10), nullable=False)  # e.g. 9AM, stored as supplied
    is_available = Column(Boolean, default=True, nullable=False)
    booking_id = Column(String(64), nullable=True, index=True)

    day = relationship("CalendarDay", back_populates="time_slots")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String(64), unique=True, index=True, nullable=False)

    # Document-shaped sub-records, always reassigned rather than mutated in place
    customer = Column(JSON, nullable=False)  # name, email, phone, address
    service = Column(JSON, nullable=False)  # date, timeSlot, crewSize, hourlyRate, services...
    payment = Column(JSON, nullable=True)  # deposit/final amounts and Square references
    status_history = Column(JSON, default=list, nullable=False)

    # Scalar copies of document fields used for filtering
    service_date = Column(String(10), nullable=False, index=True)
    time_slot = Column(String(5), nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)
    customer_email = Column(String(255), nullable=True, index=True)
    hourly_rate = Column(Float, nullable=True)

    created_by = Column(String(100), default="customer", nullable=False)
    internal_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class TeamRates(Base):
    __tablename__ = "team_rates"

    id = Column(Integer, primary_key=True)
    rates = Column(JSON, nullable=False)  # twoMan, threeMan, fourMan hourly rates
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
