"""Team rate schemas"""

from pydantic import BaseModel, Field


class TeamRatesPayload(BaseModel):
    """Hourly rate per crew size"""

    twoMan: float = Field(gt=0)
    threeMan: float = Field(gt=0)
    fourMan: float = Field(gt=0)
