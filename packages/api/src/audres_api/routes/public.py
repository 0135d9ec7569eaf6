# This project was developed with assistance from AI tools.
"""Public API routes -- no authentication required."""

import logging

from audres_db import get_db
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.rating import RatingCreate, RatingResponse
from ..schemas.request import LedgerResult, PublicRequestCreate
from ..services.ratings import submit_rating
from ..services.requests import render_ledger
from ..services.submission import (
    DuplicateAccountError,
    SubmissionConflictError,
    SubmissionValidationError,
    submit_public_request,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/requests", response_model=LedgerResult, status_code=201)
async def create_public_request(
    body: PublicRequestCreate,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Register a requester and file their first request.

    The account and the request wait in the staff verification queue
    until confirmed.
    """
    try:
        ledger = await submit_public_request(session, body)
    except SubmissionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (DuplicateAccountError, SubmissionConflictError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return LedgerResult(
        data=await render_ledger(session, ledger),
        message=f"Request {ledger.tr} submitted. It will be processed once your account is verified.",
    )


@router.post("/ratings", response_model=RatingResponse, status_code=201)
async def create_rating(
    body: RatingCreate,
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> RatingResponse:
    """Record a 1-5 satisfaction rating for the portal."""
    ip = request.client.host if request.client else None
    row = await submit_rating(session, body.rating, ip=ip)
    return RatingResponse.model_validate(row)
