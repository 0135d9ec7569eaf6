# This project was developed with assistance from AI tools.
"""Request submission for signed-in requesters and self-registering walk-ins.

A submission creates one ledger plus one item per requested document, all
sharing a freshly allocated transaction code, in a single transaction
together with its audit event.
"""

import logging

from audres_db import DocumentRequest, RequestItem, User
from audres_db.enums import ItemStatus, RequestStatus
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..schemas.auth import UserContext
from ..schemas.request import ItemCreate, PublicRequestCreate
from .audit import write_audit_event
from .catalog import get_orderable_types
from .transaction_code import generate_transaction_code
from .users import ensure_user

logger = logging.getLogger(__name__)


class SubmissionValidationError(ValueError):
    """Raised when the submitted items cannot be accepted."""


class DuplicateAccountError(ValueError):
    """Raised when a self-registration reuses an existing email or school id."""


class SubmissionConflictError(RuntimeError):
    """Raised when the allocated transaction code is already taken."""


async def validate_items(session: AsyncSession, items: list[ItemCreate]) -> None:
    """Reject empty submissions, bad quantities, and unknown or archived types."""
    if not items:
        raise SubmissionValidationError("At least one document must be requested")

    orderable = await get_orderable_types(session)
    unknown = sorted({i.type for i in items if i.type not in orderable})
    if unknown:
        raise SubmissionValidationError(
            f"Unknown or unavailable document type(s): {', '.join(unknown)}"
        )
    for item in items:
        if item.quantity < 1:
            raise SubmissionValidationError(f"Quantity for '{item.type}' must be at least 1")


async def _create_ledger(
    session: AsyncSession,
    requester: User,
    items: list[ItemCreate],
    *,
    pending_verification: bool,
) -> DocumentRequest:
    tr = await generate_transaction_code(session, requester.id)
    ledger = DocumentRequest(
        tr=tr,
        request_by=requester.id,
        status=RequestStatus.PENDING,
        payment_proofs=[],
        archived=False,
        pending_verification=pending_verification,
    )
    session.add(ledger)
    for item in items:
        session.add(
            RequestItem(
                tr=tr,
                type=item.type,
                purpose=item.purpose,
                quantity=item.quantity,
                school_year=item.school_year,
                semester=item.semester,
                status=ItemStatus.PENDING,
            )
        )
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise SubmissionConflictError(f"Transaction code {tr} is already in use; retry") from exc
    return ledger


async def _finish(
    session: AsyncSession,
    ledger: DocumentRequest,
    actor: UserContext | None,
    item_count: int,
) -> DocumentRequest:
    ledger_id = ledger.id
    tr = ledger.tr
    await write_audit_event(
        session,
        event_type="submission",
        actor=actor,
        request_id=ledger_id,
        event_data={
            "tr": tr,
            "items": item_count,
            "pending_verification": ledger.pending_verification,
        },
    )
    await session.commit()

    logger.info("Submitted request %s (%s) with %d item(s)", ledger_id, tr, item_count)
    result = await session.execute(
        select(DocumentRequest)
        .where(DocumentRequest.id == ledger_id)
        .options(selectinload(DocumentRequest.items))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def submit_request(
    session: AsyncSession,
    user: UserContext,
    items: list[ItemCreate],
) -> DocumentRequest:
    """Create a ledger for the signed-in requester.

    Raises:
        SubmissionValidationError: Empty item list or an unorderable type.
        SubmissionConflictError: The transaction code collided.
    """
    await validate_items(session, items)
    requester = await ensure_user(session, user)
    ledger = await _create_ledger(session, requester, items, pending_verification=False)
    return await _finish(session, ledger, user, len(items))


async def submit_public_request(session: AsyncSession, data: PublicRequestCreate) -> DocumentRequest:
    """Register a requester account and file their first ledger.

    Both the account and the ledger await staff confirmation.

    Raises:
        SubmissionValidationError: Empty item list or an unorderable type.
        DuplicateAccountError: The email or school id already belongs to a user.
        SubmissionConflictError: The transaction code collided.
    """
    await validate_items(session, data.items)

    result = await session.execute(
        select(User.id).where(or_(User.email == data.email, User.school_id == data.school_id))
    )
    if result.first() is not None:
        logger.warning("Rejected self-registration for %s: account exists", data.email)
        raise DuplicateAccountError("An account with this email or school id already exists")

    requester = User(
        first_name=data.first_name,
        middle_name=data.middle_name,
        last_name=data.last_name,
        email=data.email,
        school_id=data.school_id,
        role=data.role,
        course=data.course,
        year_level=data.year_level,
        campus=data.campus,
        archived=False,
        pending_verification=True,
    )
    session.add(requester)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateAccountError("An account with this email or school id already exists") from exc

    ledger = await _create_ledger(session, requester, data.items, pending_verification=True)
    return await _finish(session, ledger, None, len(data.items))
