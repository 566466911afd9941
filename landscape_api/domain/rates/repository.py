"""Team rates repository - the single team_rates row"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import TeamRates


class TeamRatesRepository:
    @staticmethod
    def get(db: Session) -> Optional[TeamRates]:
        return db.query(TeamRates).order_by(TeamRates.id).first()

    @staticmethod
    def save(db: Session, rates: dict) -> TeamRates:
        """Overwrite the stored rates in place, creating the row on first save"""
        row = TeamRatesRepository.get(db)
        if row is None:
            row = TeamRates(id=1, rates=rates)
            db.add(row)
        else:
            row.rates = rates
        db.flush()
        return row
