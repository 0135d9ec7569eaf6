# This project was developed with assistance from AI tools.
"""Request lifecycle engine.

Early triage happens per item: item decisions may roll the ledger forward
to Reviewed. Later stages (Assessed through Claimed) are set on the whole
ledger by staff. Nothing but Decline and Restore moves a ledger backward.

The module has two layers. The plain functions below mutate an already
loaded ledger and its items, checking preconditions before touching
anything. The async wrappers lock the ledger row, apply one of them,
append an audit event, and commit once, so a transition lands whole or
not at all.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from audres_db import DocumentRequest, RequestItem, User
from audres_db.enums import ItemStatus, RequestStatus, UserRole
from botocore.exceptions import ClientError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from ..schemas.auth import UserContext
from .audit import write_audit_event
from .requests import get_request
from .scope import apply_data_scope
from .storage import get_storage_service
from .users import ensure_user, get_user

logger = logging.getLogger(__name__)


class InvalidTransitionError(ValueError):
    """Raised when a ledger or item is not in a state the operation accepts."""


class StaffNotFoundError(LookupError):
    """Raised when an assignment names a user who is not registrar or accounting staff."""


class ConcurrentUpdateError(RuntimeError):
    """Raised when the ledger changed underneath the transition."""


class StorageUploadError(RuntimeError):
    """Raised when object storage rejects an upload; the ledger is left untouched."""


class _ItemNotFound(LookupError):
    pass


# ---------------------------------------------------------------------------
# Precondition helpers
# ---------------------------------------------------------------------------


def _require_open(ledger: DocumentRequest) -> None:
    if ledger.status in RequestStatus.terminal_statuses():
        raise InvalidTransitionError(f"Request {ledger.tr} is already {ledger.status.value}")


def _require_not_declined(ledger: DocumentRequest) -> None:
    # only Restore clears a decline
    declined = ledger.decline_at is not None or (
        ledger.items and all(i.status == ItemStatus.DECLINED for i in ledger.items)
    )
    if declined:
        raise InvalidTransitionError(f"Request {ledger.tr} is declined; restore it first")


def _require_source(ledger: DocumentRequest, target: RequestStatus) -> None:
    _require_not_declined(ledger)
    allowed = RequestStatus.valid_sources()[target]
    if ledger.status not in allowed:
        raise InvalidTransitionError(
            f"Cannot move request {ledger.tr} from '{ledger.status.value}' to '{target.value}'. "
            f"Allowed from: {sorted(s.value for s in allowed)}."
        )


def _roll_forward(ledger: DocumentRequest, target: RequestStatus) -> None:
    if ledger.status.is_before(target):
        ledger.status = target


def _clear_flags(ledger: DocumentRequest) -> None:
    ledger.hold_at = None
    ledger.decline_at = None


def _find_item(ledger: DocumentRequest, item_id: int) -> RequestItem | None:
    return next((i for i in ledger.items if i.id == item_id), None)


# ---------------------------------------------------------------------------
# Item decisions
# ---------------------------------------------------------------------------


def approve_item(ledger: DocumentRequest, item: RequestItem, now: datetime) -> None:
    _require_open(ledger)
    if item.status != ItemStatus.PENDING:
        raise InvalidTransitionError(f"Item {item.id} is {item.status.value}, not Pending")

    item.status = ItemStatus.APPROVED
    _clear_flags(ledger)
    ledger.review_at = now
    if not any(i.status == ItemStatus.PENDING for i in ledger.items):
        _roll_forward(ledger, RequestStatus.REVIEWED)


def decline_item(
    ledger: DocumentRequest,
    item: RequestItem,
    now: datetime,
    remarks: str | None = None,
) -> None:
    """Decline one line.

    Once no line is left Pending the ledger is settled: flagged declined
    when every line was declined, otherwise rolled forward to Reviewed.
    Declining a line again only replaces its remarks.
    """
    _require_open(ledger)
    if item.status == ItemStatus.DECLINED:
        item.remarks = remarks
        return

    item.status = ItemStatus.DECLINED
    item.remarks = remarks
    statuses = [i.status for i in ledger.items]
    if ItemStatus.PENDING in statuses:
        return
    if all(s == ItemStatus.DECLINED for s in statuses):
        ledger.decline_at = now
    else:
        _roll_forward(ledger, RequestStatus.REVIEWED)
        ledger.approve_at = now


def approve_all_items(ledger: DocumentRequest, now: datetime) -> None:
    _require_open(ledger)
    if not ledger.items:
        raise InvalidTransitionError(f"Request {ledger.tr} has no items")

    for item in ledger.items:
        item.status = ItemStatus.APPROVED
        item.remarks = None
    _roll_forward(ledger, RequestStatus.REVIEWED)
    ledger.review_at = now
    _clear_flags(ledger)


# ---------------------------------------------------------------------------
# Ledger side states
# ---------------------------------------------------------------------------


def decline_request(ledger: DocumentRequest, now: datetime, remarks: str | None = None) -> None:
    _require_open(ledger)
    for item in ledger.items:
        item.status = ItemStatus.DECLINED
    ledger.status = RequestStatus.PENDING
    ledger.decline_at = now
    ledger.hold_at = None
    ledger.remarks = remarks


def hold_request(ledger: DocumentRequest, now: datetime, remarks: str | None = None) -> None:
    _require_open(ledger)
    ledger.hold_at = now
    ledger.decline_at = None
    ledger.remarks = remarks


def restore_request(ledger: DocumentRequest) -> None:
    """Reopen a ledger for triage; applying it twice changes nothing further."""
    _require_open(ledger)
    for item in ledger.items:
        item.status = ItemStatus.PENDING
        item.remarks = None
    ledger.status = RequestStatus.PENDING
    _clear_flags(ledger)
    ledger.remarks = None


# ---------------------------------------------------------------------------
# Staff-set stages
# ---------------------------------------------------------------------------


def assess(ledger: DocumentRequest, now: datetime) -> None:
    _require_source(ledger, RequestStatus.ASSESSED)
    ledger.status = RequestStatus.ASSESSED
    ledger.assess_at = now
    _clear_flags(ledger)


def mark_for_payment(ledger: DocumentRequest) -> None:
    _require_source(ledger, RequestStatus.FOR_PAYMENT)
    ledger.status = RequestStatus.FOR_PAYMENT
    _clear_flags(ledger)


def check_payment_allowed(ledger: DocumentRequest) -> None:
    _require_source(ledger, RequestStatus.FOR_VERIFICATION)


def record_payment(
    ledger: DocumentRequest,
    proof_keys: list[str],
    now: datetime,
    pay_mode: str | None = None,
) -> None:
    if not proof_keys:
        raise InvalidTransitionError("At least one payment proof is required")
    check_payment_allowed(ledger)
    ledger.payment_proofs = list(ledger.payment_proofs or []) + list(proof_keys)
    if pay_mode:
        ledger.pay_mode = pay_mode
    ledger.status = RequestStatus.FOR_VERIFICATION
    ledger.pay_at = now


def verify_payment(ledger: DocumentRequest, now: datetime) -> None:
    _require_source(ledger, RequestStatus.VERIFIED)
    ledger.status = RequestStatus.VERIFIED
    ledger.verify_at = now
    _clear_flags(ledger)


def turn_over(ledger: DocumentRequest, now: datetime) -> None:
    _require_source(ledger, RequestStatus.FOR_RELEASE)
    ledger.status = RequestStatus.FOR_RELEASE
    ledger.turn_at = now
    _clear_flags(ledger)
    ledger.remarks = None


def claim(ledger: DocumentRequest, now: datetime, claimant: str | None, released_by: int) -> None:
    _require_source(ledger, RequestStatus.CLAIMED)
    ledger.status = RequestStatus.CLAIMED
    ledger.claimed_at = now
    ledger.claimed_by = claimant
    ledger.release_by = released_by
    _clear_flags(ledger)
    ledger.remarks = None


def assign_staff(ledger: DocumentRequest, staff: User, now: datetime) -> None:
    if staff.role not in UserRole.staff_roles() or staff.archived:
        raise StaffNotFoundError(f"User {staff.id} is not active registrar staff")
    ledger.process_by = staff.id
    ledger.assign_at = now


def confirm_submission(ledger: DocumentRequest, requester: User | None) -> None:
    if not ledger.pending_verification:
        raise InvalidTransitionError(f"Request {ledger.tr} is not awaiting verification")
    ledger.pending_verification = False
    if requester is not None:
        requester.pending_verification = False


# ---------------------------------------------------------------------------
# Transactional wrappers
# ---------------------------------------------------------------------------


async def _load_for_update(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
) -> DocumentRequest | None:
    stmt = (
        select(DocumentRequest)
        .where(DocumentRequest.id == request_id)
        .options(selectinload(DocumentRequest.items))
        .with_for_update(of=DocumentRequest)
    )
    stmt = apply_data_scope(stmt, user.data_scope)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _commit_transition(
    session: AsyncSession,
    user: UserContext,
    ledger: DocumentRequest,
    action: str,
    before: RequestStatus,
    extra: dict | None = None,
) -> DocumentRequest:
    request_id = ledger.id
    await write_audit_event(
        session,
        event_type=f"transition.{action}",
        actor=user,
        request_id=request_id,
        event_data={
            "tr": ledger.tr,
            "from": before.value,
            "to": ledger.status.value,
            **(extra or {}),
        },
    )
    try:
        await session.commit()
    except StaleDataError as exc:
        await session.rollback()
        raise ConcurrentUpdateError(f"Request {request_id} was modified concurrently; retry") from exc

    logger.info(
        "Request %s: %s by %s (%s -> %s)",
        request_id,
        action,
        user.user_id,
        before.value,
        ledger.status.value,
    )
    return await get_request(session, user, request_id, refresh=True)


async def _run(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    action: str,
    apply: Callable[[DocumentRequest], dict | None],
) -> DocumentRequest | None:
    """Lock, apply, audit, commit. Returns None when the ledger is not visible."""
    ledger = await _load_for_update(session, user, request_id)
    if ledger is None:
        return None

    before = ledger.status
    try:
        extra = apply(ledger)
    except (InvalidTransitionError, StaffNotFoundError):
        await session.rollback()
        raise
    return await _commit_transition(session, user, ledger, action, before, extra)


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


async def _run_item(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    item_id: int,
    action: str,
    apply: Callable[[DocumentRequest, RequestItem], None],
) -> DocumentRequest | None:
    def _apply(ledger: DocumentRequest) -> dict:
        item = _find_item(ledger, item_id)
        if item is None:
            raise _ItemNotFound(item_id)
        apply(ledger, item)
        return {"item_id": item_id, "item_status": item.status.value}

    try:
        return await _run(session, user, request_id, action, _apply)
    except _ItemNotFound:
        await session.rollback()
        return None


async def approve_item_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    item_id: int,
    *,
    now: datetime | None = None,
) -> DocumentRequest | None:
    at = _now(now)
    return await _run_item(
        session,
        user,
        request_id,
        item_id,
        "approve_item",
        lambda ledger, item: approve_item(ledger, item, at),
    )


async def decline_item_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    item_id: int,
    *,
    remarks: str | None = None,
    now: datetime | None = None,
) -> DocumentRequest | None:
    at = _now(now)
    return await _run_item(
        session,
        user,
        request_id,
        item_id,
        "decline_item",
        lambda ledger, item: decline_item(ledger, item, at, remarks),
    )


async def approve_all_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    *,
    now: datetime | None = None,
) -> DocumentRequest | None:
    at = _now(now)
    return await _run(
        session, user, request_id, "approve_all", lambda lg: approve_all_items(lg, at)
    )


async def decline_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    *,
    remarks: str | None = None,
    now: datetime | None = None,
) -> DocumentRequest | None:
    at = _now(now)
    return await _run(
        session, user, request_id, "decline", lambda lg: decline_request(lg, at, remarks)
    )


async def hold_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    *,
    remarks: str | None = None,
    now: datetime | None = None,
) -> DocumentRequest | None:
    at = _now(now)
    return await _run(session, user, request_id, "hold", lambda lg: hold_request(lg, at, remarks))


async def restore_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
) -> DocumentRequest | None:
    return await _run(session, user, request_id, "restore", restore_request)


async def assess_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    *,
    now: datetime | None = None,
) -> DocumentRequest | None:
    at = _now(now)
    return await _run(session, user, request_id, "assess", lambda lg: assess(lg, at))


async def for_payment_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
) -> DocumentRequest | None:
    return await _run(session, user, request_id, "for_payment", mark_for_payment)


async def verify_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    *,
    now: datetime | None = None,
) -> DocumentRequest | None:
    at = _now(now)
    return await _run(session, user, request_id, "verify", lambda lg: verify_payment(lg, at))


async def turn_over_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    *,
    now: datetime | None = None,
) -> DocumentRequest | None:
    at = _now(now)
    return await _run(session, user, request_id, "turn_over", lambda lg: turn_over(lg, at))


async def claim_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    *,
    claimant: str | None = None,
    now: datetime | None = None,
) -> DocumentRequest | None:
    """Release the documents; the calling staff member is recorded as releaser."""
    at = _now(now)
    releaser = await ensure_user(session, user)
    releaser_id = releaser.id
    return await _run(
        session,
        user,
        request_id,
        "claim",
        lambda lg: claim(lg, at, claimant, releaser_id),
    )


async def assign_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    staff_id: int,
    *,
    now: datetime | None = None,
) -> DocumentRequest | None:
    """Record ``staff_id`` as the ledger's processor.

    Raises StaffNotFoundError when no such user exists or the user is not staff.
    """
    staff = await get_user(session, staff_id)
    if staff is None:
        raise StaffNotFoundError(f"No user with id {staff_id}")
    at = _now(now)

    def _apply(ledger: DocumentRequest) -> dict:
        assign_staff(ledger, staff, at)
        return {"staff_id": staff_id}

    return await _run(session, user, request_id, "assign", _apply)


async def confirm_transition(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
) -> DocumentRequest | None:
    """Clear the pending-verification flag on the ledger and its requester."""
    ledger = await _load_for_update(session, user, request_id)
    if ledger is None:
        return None
    requester = await get_user(session, ledger.request_by)
    before = ledger.status
    try:
        confirm_submission(ledger, requester)
    except InvalidTransitionError:
        await session.rollback()
        raise
    return await _commit_transition(session, user, ledger, "confirm", before)


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


async def upload_payment(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    files: list[tuple[str, str, bytes]],
    *,
    pay_mode: str | None = None,
    now: datetime | None = None,
) -> DocumentRequest | None:
    """Store payment proofs and move the ledger to For Verification.

    Args:
        files: ``(filename, content_type, data)`` tuples; at least one.

    Raises:
        InvalidTransitionError: No files, or the ledger is not awaiting payment.
        StorageUploadError: Object storage refused a file; nothing was recorded.
    """
    ledger = await _load_for_update(session, user, request_id)
    if ledger is None:
        return None

    before = ledger.status
    try:
        if not files:
            raise InvalidTransitionError("At least one payment proof is required")
        check_payment_allowed(ledger)
    except InvalidTransitionError:
        await session.rollback()
        raise

    storage = get_storage_service()
    keys: list[str] = []
    try:
        for filename, content_type, data in files:
            key = storage.payment_key(ledger.tr, filename)
            keys.append(await storage.upload_file(data, key, content_type))
    except ClientError as exc:
        await session.rollback()
        logger.error("Payment proof upload failed for request %s: %s", request_id, exc)
        raise StorageUploadError("Could not store payment proof") from exc

    record_payment(ledger, keys, _now(now), pay_mode)
    return await _commit_transition(
        session, user, ledger, "payment", before, {"files": len(keys), "pay_mode": pay_mode}
    )


async def upload_item_proof(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    item_id: int,
    filename: str,
    content_type: str,
    data: bytes,
) -> DocumentRequest | None:
    """Attach an eligibility proof to one item, replacing any earlier one."""
    ledger = await _load_for_update(session, user, request_id)
    item = _find_item(ledger, item_id) if ledger is not None else None
    if item is None:
        await session.rollback()
        return None

    try:
        _require_open(ledger)
    except InvalidTransitionError:
        await session.rollback()
        raise

    storage = get_storage_service()
    key = storage.item_proof_key(ledger.tr, item_id, filename)
    try:
        await storage.upload_file(data, key, content_type)
    except ClientError as exc:
        await session.rollback()
        logger.error("Item proof upload failed for item %s: %s", item_id, exc)
        raise StorageUploadError("Could not store attachment") from exc

    item.proof = key
    return await _commit_transition(
        session, user, ledger, "item_proof", ledger.status, {"item_id": item_id}
    )
