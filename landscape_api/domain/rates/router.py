"""Team rates router"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import TeamRatesPayload
from .service import RateService

router = APIRouter(prefix="/api/team-rates", tags=["Team Rates"])


def get_rate_service(db: Session = Depends(get_db)) -> RateService:
    """Dependency injection for RateService"""
    return RateService(db)


@router.get("")
def get_team_rates(service: RateService = Depends(get_rate_service)):
    """Current hourly rate per crew size (defaults when never saved)"""
    return service.get_rates()


@router.put("")
def update_team_rates(data: TeamRatesPayload, service: RateService = Depends(get_rate_service)):
    """Overwrite the team rates; existing bookings keep their rate snapshot"""
    rates = service.save_rates(data.model_dump())
    return {"success": True, "rates": rates}
