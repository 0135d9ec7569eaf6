# This project was developed with assistance from AI tools.
"""Ledger queries: detail, scoped listing, and the verification queue."""

import logging
from decimal import Decimal

from audres_db import DocumentRequest
from audres_db.enums import ItemStatus, RequestStatus
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..schemas.auth import UserContext
from ..schemas.request import ItemResponse, LedgerResponse
from .catalog import get_prices
from .scope import apply_data_scope

logger = logging.getLogger(__name__)


async def get_request(
    session: AsyncSession,
    user: UserContext,
    request_id: int,
    *,
    refresh: bool = False,
) -> DocumentRequest | None:
    """Return one ledger with its items if visible to ``user``.

    ``refresh`` overwrites identity-map state with the row as stored,
    used after commits that changed server-side columns.
    """
    stmt = (
        select(DocumentRequest)
        .where(DocumentRequest.id == request_id)
        .options(selectinload(DocumentRequest.items))
    )
    stmt = apply_data_scope(stmt, user.data_scope)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_requests(
    session: AsyncSession,
    user: UserContext,
    *,
    offset: int = 0,
    limit: int = 20,
    status: RequestStatus | None = None,
) -> tuple[list[DocumentRequest], int]:
    """Non-archived ledgers visible to ``user``, newest first, with the total count."""
    count_stmt = select(func.count(DocumentRequest.id)).where(DocumentRequest.archived.is_(False))
    stmt = (
        select(DocumentRequest)
        .where(DocumentRequest.archived.is_(False))
        .options(selectinload(DocumentRequest.items))
        .order_by(DocumentRequest.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    if status is not None:
        count_stmt = count_stmt.where(DocumentRequest.status == status)
        stmt = stmt.where(DocumentRequest.status == status)

    count_stmt = apply_data_scope(count_stmt, user.data_scope)
    stmt = apply_data_scope(stmt, user.data_scope)

    total = (await session.execute(count_stmt)).scalar() or 0
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def list_verification_queue(
    session: AsyncSession,
    *,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[DocumentRequest], int]:
    """Ledgers awaiting staff confirmation of the submitter, whatever their status."""
    criteria = (
        DocumentRequest.pending_verification.is_(True),
        DocumentRequest.archived.is_(False),
    )
    total = (
        await session.execute(select(func.count(DocumentRequest.id)).where(*criteria))
    ).scalar() or 0
    result = await session.execute(
        select(DocumentRequest)
        .where(*criteria)
        .options(selectinload(DocumentRequest.items))
        .order_by(DocumentRequest.created_at.asc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


def build_ledger_response(ledger: DocumentRequest, prices: dict[str, Decimal]) -> LedgerResponse:
    """Serialize a ledger, pricing each line from the catalog.

    Declined lines are shown but do not count toward the total.
    """
    items = []
    total = Decimal("0")
    for item in ledger.items:
        unit = prices.get(item.type, Decimal("0"))
        line = unit * item.quantity
        if item.status != ItemStatus.DECLINED:
            total += line
        row = ItemResponse.model_validate(item)
        items.append(row.model_copy(update={"unit_price": unit, "line_total": line}))

    response = LedgerResponse.model_validate(ledger)
    return response.model_copy(
        update={
            "items": items,
            "total_amount": total,
            "is_held": ledger.hold_at is not None,
            "is_declined": ledger.decline_at is not None,
        }
    )


async def render_ledger(session: AsyncSession, ledger: DocumentRequest) -> LedgerResponse:
    """``build_ledger_response`` with prices read from the catalog."""
    return build_ledger_response(ledger, await get_prices(session))
