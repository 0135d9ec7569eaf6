# This project was developed with assistance from AI tools.
"""Resolution of authenticated callers to ``users`` rows."""

import logging

from audres_db import User
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import UserContext

logger = logging.getLogger(__name__)


async def get_user(session: AsyncSession, user_id: int) -> User | None:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def ensure_user(session: AsyncSession, user: UserContext) -> User:
    """Find the row for the token subject, creating it on first sight.

    A requester who self-registered before ever signing in already has a
    row without a subject; it is matched by email (case-insensitively) and
    linked instead of being duplicated.
    """
    result = await session.execute(select(User).where(User.external_id == user.user_id))
    row = result.scalar_one_or_none()
    if row is not None:
        return row

    email = user.email.strip().lower() if user.email else ""
    if email:
        result = await session.execute(select(User).where(func.lower(User.email) == email))
        row = result.scalar_one_or_none()
        if row is not None and row.external_id is None:
            row.external_id = user.user_id
            await session.flush()
            logger.info("Linked user row id=%s to subject %s", row.id, user.user_id)
            return row
        if row is not None:
            logger.warning(
                "Email of subject %s already belongs to subject %s; registering without it",
                user.user_id,
                row.external_id,
            )
            email = ""

    parts = user.name.split() if user.name else []
    row = User(
        external_id=user.user_id,
        first_name=parts[0] if parts else "Unknown",
        last_name=parts[-1] if len(parts) > 1 else "",
        email=email or f"{user.user_id}@users.invalid",
        role=user.role,
        archived=False,
        pending_verification=False,
    )
    session.add(row)
    await session.flush()
    logger.info("Registered user row id=%s for subject %s", row.id, user.user_id)
    return row
