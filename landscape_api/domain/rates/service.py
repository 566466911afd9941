"""Team rate business logic"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import StoreUnavailableError, ValidationFailed
from .repository import TeamRatesRepository

logger = logging.getLogger(__name__)

RATE_KEYS = {2: "twoMan", 3: "threeMan", 4: "fourMan"}
DEFAULT_RATES = {"twoMan": 70.0, "threeMan": 100.0, "fourMan": 130.0}


def normalize_rates(raw: dict | None) -> dict:
    """
    Flatten stored rates to {twoMan, threeMan, fourMan}.

    Older records kept a {low, high} range per crew; the high value is the
    hourly rate now charged.
    """
    rates = dict(DEFAULT_RATES)
    for key in RATE_KEYS.values():
        value = (raw or {}).get(key)
        if isinstance(value, dict):
            value = value.get("high") or DEFAULT_RATES[key]
        if value is not None:
            rates[key] = float(value)
    return rates


class RateService:
    """Service layer for team rates"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TeamRatesRepository()

    def get_rates(self) -> dict:
        try:
            row = self.repo.get(self.db)
            if row is None:
                return dict(DEFAULT_RATES)

            rates = normalize_rates(row.rates)
            if rates != row.rates:
                logger.info("💰 Migrating stored team rates to single-rate format")
                self.repo.save(self.db, rates)
                self.db.commit()
            return rates
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to load team rates: {e}")
            raise StoreUnavailableError() from e

    def save_rates(self, rates: dict) -> dict:
        normalized = normalize_rates(rates)
        try:
            self.repo.save(self.db, normalized)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save team rates: {e}")
            raise StoreUnavailableError() from e

        logger.info(f"💰 Updated team rates: {normalized}")
        return normalized

    def hourly_rate_for(self, crew_size: int) -> float:
        key = RATE_KEYS.get(crew_size)
        if key is None:
            raise ValidationFailed(f"Crew size must be 2, 3 or 4, got {crew_size}")
        return self.get_rates()[key]
