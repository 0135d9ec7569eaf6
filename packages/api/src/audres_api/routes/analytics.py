# This project was developed with assistance from AI tools.
"""Analytics endpoint for the registrar dashboard."""

from datetime import date

from audres_db import get_db
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import STAFF, require_roles
from ..schemas.analytics import AnalyticsReport
from ..services.analytics import get_analytics
from ..services.time_range import InvalidRangeError, RangeKind

router = APIRouter()


@router.get(
    "",
    response_model=AnalyticsReport,
    dependencies=[Depends(require_roles(*STAFF))],
)
async def analytics(
    range_kind: RangeKind = Query(default=RangeKind.THIS_YEAR, alias="range"),
    on: date | None = Query(default=None, alias="date", description="Day for range=specific"),
    start: date | None = Query(default=None, description="First day for range=custom"),
    end: date | None = Query(default=None, description="Last day for range=custom"),
    session: AsyncSession = Depends(get_db),
) -> AnalyticsReport:
    """Counts, stage durations, leaderboards and trend for the selected range."""
    try:
        return await get_analytics(session, range_kind, on=on, start=start, end=end)
    except InvalidRangeError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
