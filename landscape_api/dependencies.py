"""FastAPI dependencies shared by several routers"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .database import get_db
from .domain.scheduling.fallback import MemoryFallback
from .domain.scheduling.store import AvailabilityStore


def get_availability_fallback(request: Request) -> MemoryFallback:
    """The process-wide fallback created at startup in main"""
    return request.app.state.availability_fallback


def get_availability_store(
    db: Session = Depends(get_db),
    fallback: MemoryFallback = Depends(get_availability_fallback),
) -> AvailabilityStore:
    return AvailabilityStore(db, fallback)
