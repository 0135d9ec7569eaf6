# This project was developed with assistance from AI tools.
"""Rating summary for registrar staff."""

from audres_db import get_db
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import REGISTRAR, require_roles
from ..schemas.rating import RatingSummary
from ..services.ratings import get_rating_summary

router = APIRouter()


@router.get(
    "/summary",
    response_model=RatingSummary,
    dependencies=[Depends(require_roles(*REGISTRAR))],
)
async def rating_summary(session: AsyncSession = Depends(get_db)) -> RatingSummary:
    return await get_rating_summary(session)
