# This project was developed with assistance from AI tools.
"""Audit trail for submissions and lifecycle transitions.

Each event stores the SHA-256 of its predecessor's key fields, so any
edited or deleted row breaks the chain. Writers serialize on a
transaction-scoped PostgreSQL advisory lock.
"""

import hashlib
import json
import logging

from audres_db import AuditEvent
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import UserContext

logger = logging.getLogger(__name__)

AUDIT_LOCK_KEY = 731_001
GENESIS = "genesis"


def _event_digest(event: AuditEvent) -> str:
    body = json.dumps(event.event_data, sort_keys=True, default=str)
    payload = f"{event.id}|{event.timestamp}|{event.event_type}|{event.request_id}|{body}"
    return hashlib.sha256(payload.encode()).hexdigest()


async def write_audit_event(
    session: AsyncSession,
    *,
    event_type: str,
    actor: UserContext | None = None,
    request_id: int | None = None,
    event_data: dict | None = None,
) -> AuditEvent:
    """Append one event linked to the current chain head.

    The row is flushed but not committed; it lands with the caller's
    transaction, or not at all.

    Args:
        session: Database session.
        event_type: e.g. ``submission``, ``transition.verify``.
        actor: Caller responsible for the change; None for anonymous submissions.
        request_id: Ledger the event concerns.
        event_data: JSON-serializable details.
    """
    await session.execute(text(f"SELECT pg_advisory_xact_lock({AUDIT_LOCK_KEY})"))

    result = await session.execute(select(AuditEvent).order_by(AuditEvent.id.desc()).limit(1))
    head = result.scalar_one_or_none()

    event = AuditEvent(
        event_type=event_type,
        user_id=actor.user_id if actor else None,
        user_role=actor.role.value if actor else None,
        request_id=request_id,
        event_data=event_data,
        prev_hash=_event_digest(head) if head is not None else GENESIS,
    )
    session.add(event)
    await session.flush()
    return event


async def verify_audit_chain(session: AsyncSession) -> dict:
    """Walk the whole trail in id order and check every link.

    Returns ``{"status": "OK", "events_checked": n}`` or, on the first
    broken link, ``{"status": "TAMPERED", "first_break_id": id, "events_checked": n}``.
    """
    result = await session.execute(select(AuditEvent).order_by(AuditEvent.id.asc()))
    events = list(result.scalars().all())

    expected = GENESIS
    for checked, event in enumerate(events, start=1):
        if event.prev_hash != expected:
            logger.warning("Audit chain broken at event %s", event.id)
            return {"status": "TAMPERED", "first_break_id": event.id, "events_checked": checked}
        expected = _event_digest(event)

    return {"status": "OK", "events_checked": len(events)}


async def get_request_history(session: AsyncSession, request_id: int) -> list[AuditEvent]:
    """Events recorded against one ledger, oldest first."""
    stmt = (
        select(AuditEvent)
        .where(AuditEvent.request_id == request_id)
        .order_by(AuditEvent.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
