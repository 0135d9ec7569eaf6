# This project was developed with assistance from AI tools.
"""Mock database utilities for functional tests.

Provides an AsyncMock session whose every ``execute`` returns one result
object answering the access patterns used by the service layer:
  1. ``.scalar()`` -- count queries
  2. ``.scalars().all()`` -- list queries
  3. ``.scalar_one_or_none()`` / ``.scalar_one()`` -- single-row queries
  4. ``.all()`` -- catalog price rows
  5. ``.one()`` -- the rating aggregate
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from audres_db import get_db
from fastapi import Request

from audres_api.middleware.auth import get_current_user
from audres_api.schemas.auth import UserContext

DEFAULT_PRICES = (
    ("Transcript of Record", Decimal("350")),
    ("Diploma", Decimal("800")),
)


def make_mock_session(
    items: list | None = None,
    single: object | None = None,
    count: int | None = None,
    prices: tuple = DEFAULT_PRICES,
) -> AsyncMock:
    """Build an AsyncMock session that returns predictable query results.

    Args:
        items: ORM objects for ``.scalars().all()``.
        single: ORM object for ``.scalar_one_or_none()``.
        count: Integer for ``.scalar()`` (count queries).
        prices: ``(type, amount)`` rows for catalog price lookups.

    When only ``items`` is provided, count and single are inferred:
    - count = len(items)
    - single = items[0] if items else None
    """
    if items is not None and count is None:
        count = len(items)
    if items is not None and single is None:
        single = items[0] if items else None

    session = AsyncMock()
    session.add = MagicMock()

    mock_result = MagicMock()
    mock_result.scalar.return_value = count or 0
    mock_result.scalars.return_value.all.return_value = items or []
    mock_result.scalar_one_or_none.return_value = single
    mock_result.scalar_one.return_value = single
    mock_result.all.return_value = list(prices)
    mock_result.first.return_value = None
    mock_result.one.return_value = (None, 0)

    session.execute = AsyncMock(return_value=mock_result)
    return session


def configure_app_for_persona(app, user: UserContext, session: AsyncMock) -> None:
    """Override get_current_user and get_db on the real app."""

    async def fake_user(request: Request):
        return user

    async def fake_db():
        yield session

    app.dependency_overrides[get_current_user] = fake_user
    app.dependency_overrides[get_db] = fake_db
