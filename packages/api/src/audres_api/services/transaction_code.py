# This project was developed with assistance from AI tools.
"""Transaction codes (``tr``) shared by a ledger and its items.

Format: ``<prefix><YY>-<requester suffix><MM><sequence>``, e.g. ``AU25-0412007``.
The requester suffix is the requester id mod 100, zero padded to two digits.
The sequence is a per-month counter, zero padded to three digits; it keeps
counting past 999 and simply widens.
"""

import logging
from datetime import datetime

from audres_db import TransactionSequence
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from .time_range import local_now, registrar_zone

logger = logging.getLogger(__name__)


def sequence_period(when: datetime) -> str:
    """Counter key for the month containing ``when`` (``YYMM``)."""
    return when.strftime("%y%m")


def format_transaction_code(
    when: datetime,
    requester_id: int,
    sequence: int,
    prefix: str | None = None,
) -> str:
    prefix = settings.TR_PREFIX if prefix is None else prefix
    return f"{prefix}{when:%y}-{requester_id % 100:02d}{when:%m}{sequence:03d}"


async def next_sequence(session: AsyncSession, period: str) -> int:
    """Atomically bump and return the counter for ``period``.

    Runs inside the caller's transaction; concurrent submissions serialize
    on the counter row.
    """
    stmt = (
        pg_insert(TransactionSequence)
        .values(period=period, last_value=1)
        .on_conflict_do_update(
            index_elements=[TransactionSequence.period],
            set_={"last_value": TransactionSequence.last_value + 1},
        )
        .returning(TransactionSequence.last_value)
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def generate_transaction_code(
    session: AsyncSession,
    requester_id: int,
    *,
    now: datetime | None = None,
) -> str:
    """Allocate the next code for ``requester_id``.

    Args:
        session: Database session (the submission's transaction).
        requester_id: Primary key of the requesting user.
        now: Override current time (for testing); converted to the registrar zone.
    """
    when = now.astimezone(registrar_zone()) if now is not None else local_now()
    seq = await next_sequence(session, sequence_period(when))
    code = format_transaction_code(when, requester_id, seq)
    logger.debug("Allocated transaction code %s", code)
    return code
