# This project was developed with assistance from AI tools.
"""Portal rating schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RatingCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Satisfaction score from 1 to 5")


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    rating: int
    created_at: datetime | None = None


class RatingSummary(BaseModel):
    """Average score and number of ratings received."""

    average: float = 0.0
    total: int = 0
