# This project was developed with assistance from AI tools.
"""Request ledger routes: submission, queues, lifecycle transitions, uploads."""

import logging
from collections.abc import Awaitable

from audres_db import DocumentRequest, get_db
from audres_db.enums import RequestStatus
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..middleware.auth import (
    ALL_ROLES,
    MANAGERS,
    REGISTRAR,
    REQUESTERS,
    STAFF,
    CurrentUser,
    require_roles,
)
from ..schemas import Pagination
from ..schemas.request import (
    AuditEventResponse,
    LedgerListResponse,
    LedgerResponse,
    LedgerResult,
    RequestCreate,
    TransitionBody,
)
from ..services import lifecycle
from ..services import requests as request_service
from ..services.audit import get_request_history
from ..services.catalog import get_prices
from ..services.lifecycle import (
    ConcurrentUpdateError,
    InvalidTransitionError,
    StaffNotFoundError,
    StorageUploadError,
)
from ..services.storage import ALLOWED_CONTENT_TYPES
from ..services.submission import (
    SubmissionConflictError,
    SubmissionValidationError,
    submit_request,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_REGISTRAR_ONLY = [Depends(require_roles(*REGISTRAR))]


def _not_found(what: str = "Request") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


async def _apply(
    session: AsyncSession,
    pending: Awaitable[DocumentRequest | None],
    message: str,
    not_found: str = "Request",
) -> LedgerResult:
    """Await a lifecycle call and turn its outcome into a response.

    ``message`` may reference ``{tr}``.
    """
    try:
        ledger = await pending
    except InvalidTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    except StaffNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConcurrentUpdateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except StorageUploadError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    if ledger is None:
        raise _not_found(not_found)
    return LedgerResult(
        data=await request_service.render_ledger(session, ledger),
        message=message.format(tr=ledger.tr),
    )


def _remarks(body: TransitionBody | None) -> str | None:
    return body.remarks if body else None


async def _read_upload(file: UploadFile) -> tuple[str, str, bytes]:
    """Check type and size; return ``(filename, content_type, data)``."""
    content_type = file.content_type or ""
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported file type: {content_type}. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}",
        )
    data = await file.read()
    if len(data) > settings.UPLOAD_MAX_SIZE_MB * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.UPLOAD_MAX_SIZE_MB} MB",
        )
    return file.filename or "upload", content_type, data


# ---------------------------------------------------------------------------
# Submission and queries
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=LedgerResult,
    status_code=201,
    dependencies=[Depends(require_roles(*REQUESTERS))],
)
async def create_request(
    body: RequestCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Submit one or more documents under a new transaction code."""
    try:
        ledger = await submit_request(session, user, body.items)
    except SubmissionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SubmissionConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return LedgerResult(
        data=await request_service.render_ledger(session, ledger),
        message=f"Request {ledger.tr} submitted",
    )


@router.get(
    "",
    response_model=LedgerListResponse,
    dependencies=[Depends(require_roles(*ALL_ROLES))],
)
async def list_requests(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    filter_status: RequestStatus | None = Query(default=None, alias="status"),
) -> LedgerListResponse:
    """Ledgers visible to the caller: requesters see their own, staff see all."""
    ledgers, total = await request_service.list_requests(
        session, user, offset=offset, limit=limit, status=filter_status
    )
    prices = await get_prices(session)
    return LedgerListResponse(
        data=[request_service.build_ledger_response(r, prices) for r in ledgers],
        pagination=Pagination(
            total=total,
            offset=offset,
            limit=limit,
            has_more=offset + limit < total,
        ),
    )


@router.get(
    "/verification-queue",
    response_model=LedgerListResponse,
    dependencies=_REGISTRAR_ONLY,
)
async def verification_queue(
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> LedgerListResponse:
    """Self-registered submissions awaiting staff confirmation, oldest first."""
    ledgers, total = await request_service.list_verification_queue(
        session, offset=offset, limit=limit
    )
    prices = await get_prices(session)
    return LedgerListResponse(
        data=[request_service.build_ledger_response(r, prices) for r in ledgers],
        pagination=Pagination(
            total=total,
            offset=offset,
            limit=limit,
            has_more=offset + limit < total,
        ),
    )


@router.get(
    "/{request_id}",
    response_model=LedgerResponse,
    dependencies=[Depends(require_roles(*ALL_ROLES))],
)
async def get_request(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResponse:
    ledger = await request_service.get_request(session, user, request_id)
    if ledger is None:
        raise _not_found()
    return await request_service.render_ledger(session, ledger)


@router.get(
    "/{request_id}/history",
    response_model=list[AuditEventResponse],
    dependencies=_REGISTRAR_ONLY,
)
async def request_history(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[AuditEventResponse]:
    """Audit events recorded against the ledger, oldest first."""
    ledger = await request_service.get_request(session, user, request_id)
    if ledger is None:
        raise _not_found()
    events = await get_request_history(session, request_id)
    return [AuditEventResponse.model_validate(e) for e in events]


# ---------------------------------------------------------------------------
# Item decisions
# ---------------------------------------------------------------------------


@router.post(
    "/{request_id}/items/{item_id}/approve",
    response_model=LedgerResult,
    dependencies=_REGISTRAR_ONLY,
)
async def approve_item(
    request_id: int,
    item_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    return await _apply(
        session,
        lifecycle.approve_item_transition(session, user, request_id, item_id),
        f"Item {item_id} approved",
        not_found="Request item",
    )


@router.post(
    "/{request_id}/items/{item_id}/decline",
    response_model=LedgerResult,
    dependencies=_REGISTRAR_ONLY,
)
async def decline_item(
    request_id: int,
    item_id: int,
    user: CurrentUser,
    body: TransitionBody | None = None,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    return await _apply(
        session,
        lifecycle.decline_item_transition(
            session, user, request_id, item_id, remarks=_remarks(body)
        ),
        f"Item {item_id} declined",
        not_found="Request item",
    )


@router.post(
    "/{request_id}/approve-all",
    response_model=LedgerResult,
    dependencies=_REGISTRAR_ONLY,
)
async def approve_all(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    return await _apply(
        session,
        lifecycle.approve_all_transition(session, user, request_id),
        "All documents in {tr} approved",
    )


# ---------------------------------------------------------------------------
# Ledger transitions
# ---------------------------------------------------------------------------


@router.post(
    "/{request_id}/assign",
    response_model=LedgerResult,
    dependencies=[Depends(require_roles(*MANAGERS))],
)
async def assign(
    request_id: int,
    body: TransitionBody,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Record which staff member processes the request."""
    if body.staff_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="staff_id is required"
        )
    return await _apply(
        session,
        lifecycle.assign_transition(session, user, request_id, body.staff_id),
        "Request {tr} assigned",
    )


@router.post("/{request_id}/decline", response_model=LedgerResult, dependencies=_REGISTRAR_ONLY)
async def decline(
    request_id: int,
    user: CurrentUser,
    body: TransitionBody | None = None,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    return await _apply(
        session,
        lifecycle.decline_transition(session, user, request_id, remarks=_remarks(body)),
        "Request {tr} declined",
    )


@router.post("/{request_id}/hold", response_model=LedgerResult, dependencies=_REGISTRAR_ONLY)
async def hold(
    request_id: int,
    user: CurrentUser,
    body: TransitionBody | None = None,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    return await _apply(
        session,
        lifecycle.hold_transition(session, user, request_id, remarks=_remarks(body)),
        "Request {tr} put on hold",
    )


@router.post("/{request_id}/restore", response_model=LedgerResult, dependencies=_REGISTRAR_ONLY)
async def restore(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Reopen a held or declined request for triage."""
    return await _apply(
        session,
        lifecycle.restore_transition(session, user, request_id),
        "Request {tr} restored",
    )


@router.post("/{request_id}/assess", response_model=LedgerResult, dependencies=_REGISTRAR_ONLY)
async def assess(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    return await _apply(
        session,
        lifecycle.assess_transition(session, user, request_id),
        "Request {tr} assessed",
    )


@router.post(
    "/{request_id}/for-payment",
    response_model=LedgerResult,
    dependencies=_REGISTRAR_ONLY,
)
async def for_payment(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    return await _apply(
        session,
        lifecycle.for_payment_transition(session, user, request_id),
        "Request {tr} is awaiting payment",
    )


@router.post(
    "/{request_id}/verify",
    response_model=LedgerResult,
    dependencies=[Depends(require_roles(*STAFF))],
)
async def verify(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Confirm the payment for a request."""
    return await _apply(
        session,
        lifecycle.verify_transition(session, user, request_id),
        "Payment for {tr} verified",
    )


@router.post(
    "/{request_id}/turn-over",
    response_model=LedgerResult,
    dependencies=_REGISTRAR_ONLY,
)
async def turn_over(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    return await _apply(
        session,
        lifecycle.turn_over_transition(session, user, request_id),
        "Request {tr} is ready for release",
    )


@router.post("/{request_id}/claim", response_model=LedgerResult, dependencies=_REGISTRAR_ONLY)
async def claim(
    request_id: int,
    user: CurrentUser,
    body: TransitionBody | None = None,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Release the documents; ``claimant`` names who picked them up."""
    return await _apply(
        session,
        lifecycle.claim_transition(
            session, user, request_id, claimant=body.claimant if body else None
        ),
        "Request {tr} claimed",
    )


@router.post("/{request_id}/confirm", response_model=LedgerResult, dependencies=_REGISTRAR_ONLY)
async def confirm(
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Accept a self-registered submission and its requester account."""
    return await _apply(
        session,
        lifecycle.confirm_transition(session, user, request_id),
        "Request {tr} confirmed",
    )


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


@router.post(
    "/{request_id}/payment",
    response_model=LedgerResult,
    dependencies=[Depends(require_roles(*ALL_ROLES))],
)
async def upload_payment(
    request_id: int,
    user: CurrentUser,
    files: list[UploadFile] = File(...),
    pay_mode: str | None = Form(default=None, max_length=50),
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Attach proof of payment and move the request to For Verification."""
    uploads = [await _read_upload(f) for f in files]
    return await _apply(
        session,
        lifecycle.upload_payment(session, user, request_id, uploads, pay_mode=pay_mode),
        "Payment for {tr} received and awaiting verification",
    )


@router.post(
    "/{request_id}/items/{item_id}/proof",
    response_model=LedgerResult,
    dependencies=[Depends(require_roles(*REQUESTERS, *REGISTRAR))],
)
async def upload_item_proof(
    request_id: int,
    item_id: int,
    user: CurrentUser,
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
) -> LedgerResult:
    """Attach a proof-of-eligibility file to one requested document."""
    filename, content_type, data = await _read_upload(file)
    return await _apply(
        session,
        lifecycle.upload_item_proof(
            session, user, request_id, item_id, filename, content_type, data
        ),
        f"Attachment saved for item {item_id}",
        not_found="Request item",
    )
