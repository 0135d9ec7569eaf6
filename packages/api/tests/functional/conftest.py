# This project was developed with assistance from AI tools.
"""Functional fixtures: the real app, a mocked session, and a chosen caller.

Overrides live on the shared ``app`` singleton, so they are dropped after
every test.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from audres_api.main import app as real_app
from audres_api.schemas.auth import UserContext

from .mock_db import configure_app_for_persona


@pytest.fixture(autouse=True)
def _clean_overrides():
    yield
    real_app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _no_audit_writes():
    """Audit chaining is covered by test_audit.py; flows only need the call."""
    with (
        patch("audres_api.services.lifecycle.write_audit_event", new_callable=AsyncMock) as a,
        patch("audres_api.services.submission.write_audit_event", new_callable=AsyncMock),
    ):
        yield a


@pytest.fixture
def app():
    """The mounted application, not a copy."""
    return real_app


@pytest.fixture
def make_client(app):
    """``make_client(user, session)`` -> TestClient acting as ``user``."""

    def _make(user: UserContext, session: AsyncMock) -> TestClient:
        configure_app_for_persona(app, user, session)
        return TestClient(app)

    return _make


@pytest.fixture
def make_upload_client(app):
    """Like ``make_client`` but with object storage replaced by a MagicMock.

    Returns ``(client, storage)``; the storage patch ends with the test.
    """
    patchers = []

    def _make(user: UserContext, session: AsyncMock) -> tuple[TestClient, MagicMock]:
        configure_app_for_persona(app, user, session)

        mock_storage = MagicMock()
        mock_storage.payment_key.side_effect = lambda tr, name: f"requests/{tr}/payments/x-{name}"
        mock_storage.item_proof_key.side_effect = lambda tr, item_id, name: (
            f"requests/{tr}/items/{item_id}/{name}"
        )
        mock_storage.upload_file = AsyncMock(side_effect=lambda data, key, content_type: key)

        patcher = patch(
            "audres_api.services.lifecycle.get_storage_service", return_value=mock_storage
        )
        patcher.start()
        patchers.append(patcher)
        return TestClient(app), mock_storage

    yield _make

    for p in patchers:
        p.stop()
