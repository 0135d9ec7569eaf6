# This project was developed with assistance from AI tools.
"""Portal satisfaction ratings."""

import logging

from audres_db import Rating
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.rating import RatingSummary

logger = logging.getLogger(__name__)


async def submit_rating(session: AsyncSession, rating: int, ip: str | None = None) -> Rating:
    row = Rating(rating=rating, ip=ip)
    session.add(row)
    await session.commit()
    await session.refresh(row)
    logger.info("Recorded portal rating %d", rating)
    return row


async def get_rating_summary(session: AsyncSession) -> RatingSummary:
    """Average score (2 decimals) and count over every rating received."""
    result = await session.execute(select(func.avg(Rating.rating), func.count(Rating.id)))
    average, total = result.one()
    return RatingSummary(
        average=round(float(average), 2) if average is not None else 0.0,
        total=total or 0,
    )
