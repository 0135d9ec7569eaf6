# This project was developed with assistance from AI tools.
"""Functional tests: ledger lifecycle through the real app.

Walks a request from triage to release with a mocked DB holding one ledger.
Verifies status changes, one-shot messages, error mapping (404, 409, 422),
and which roles may drive each step.
"""

from unittest.mock import AsyncMock, patch

import pytest
from audres_db.enums import ItemStatus, RequestStatus, UserRole
from sqlalchemy.orm.exc import StaleDataError

from ..factories import make_item, make_ledger, make_user
from .mock_db import make_mock_session
from .personas import accounting, registrar_head, registrar_staff, student_ana

pytestmark = pytest.mark.functional

TR = "AU26-0110007"


def _ledger(status=RequestStatus.PENDING, **fields):
    return make_ledger(
        id=21,
        tr=TR,
        status=status,
        items=[make_item(id=1, tr=TR), make_item(id=2, tr=TR, type="Diploma")],
        **fields,
    )


# ---------------------------------------------------------------------------
# Triage
# ---------------------------------------------------------------------------


class TestItemTriage:
    def test_approving_every_item_reviews_ledger(self, make_client, _no_audit_writes):
        ledger = _ledger()
        client = make_client(registrar_staff(), make_mock_session(single=ledger))

        first = client.post("/api/requests/21/items/1/approve")
        assert first.status_code == 200
        assert first.json()["message"] == "Item 1 approved"
        assert first.json()["data"]["status"] == "Pending"

        second = client.post("/api/requests/21/items/2/approve")
        assert second.json()["data"]["status"] == "Reviewed"
        assert _no_audit_writes.await_count == 2

    def test_declining_every_item_flags_ledger(self, make_client):
        ledger = _ledger()
        client = make_client(registrar_staff(), make_mock_session(single=ledger))

        client.post("/api/requests/21/items/1/decline", json={"remarks": "No clearance"})
        resp = client.post("/api/requests/21/items/2/decline")

        data = resp.json()["data"]
        assert data["is_declined"] is True
        assert data["status"] == "Pending"
        assert data["items"][0]["remarks"] == "No clearance"
        assert data["total_amount"] == "0"

    def test_approve_all(self, make_client):
        client = make_client(registrar_staff(), make_mock_session(single=_ledger()))
        resp = client.post("/api/requests/21/approve-all")
        assert resp.status_code == 200
        assert resp.json()["message"] == f"All documents in {TR} approved"
        assert {i["status"] for i in resp.json()["data"]["items"]} == {"Approved"}

    def test_unknown_item_is_404(self, make_client):
        client = make_client(registrar_staff(), make_mock_session(single=_ledger()))
        resp = client.post("/api/requests/21/items/99/approve")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Request item not found"

    def test_unknown_request_is_404(self, make_client):
        client = make_client(registrar_staff(), make_mock_session(single=None))
        resp = client.post("/api/requests/404/hold")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Request not found"

    def test_requester_cannot_triage(self, make_client):
        client = make_client(student_ana(), make_mock_session(single=_ledger()))
        assert client.post("/api/requests/21/items/1/approve").status_code == 403


# ---------------------------------------------------------------------------
# Staff-set stages
# ---------------------------------------------------------------------------


class TestStages:
    def test_assess_before_review_is_422(self, make_client):
        ledger = _ledger()
        client = make_client(registrar_staff(), make_mock_session(single=ledger))

        resp = client.post("/api/requests/21/assess")

        assert resp.status_code == 422
        assert "Allowed from" in resp.json()["detail"]
        assert ledger.status == RequestStatus.PENDING

    def test_review_to_release(self, make_client):
        ledger = _ledger(RequestStatus.REVIEWED)
        for item in ledger.items:
            item.status = ItemStatus.APPROVED
        session = make_mock_session(single=ledger)
        client = make_client(registrar_staff(), session)

        assert client.post("/api/requests/21/assess").json()["data"]["status"] == "Assessed"
        resp = client.post("/api/requests/21/for-payment")
        assert resp.json()["message"] == f"Request {TR} is awaiting payment"

        verifier = make_client(accounting(), session)
        assert verifier.post("/api/requests/21/verify").json()["data"]["status"] == "Verified"

        client = make_client(registrar_staff(), session)
        resp = client.post("/api/requests/21/turn-over")
        assert resp.json()["data"]["status"] == "For Release"

        releaser = make_user(id=40, role=UserRole.STAFF)
        with patch("audres_api.services.lifecycle.ensure_user", AsyncMock(return_value=releaser)):
            resp = client.post("/api/requests/21/claim", json={"claimant": "Ana Reyes"})

        data = resp.json()["data"]
        assert data["status"] == "Claimed"
        assert data["claimed_by"] == "Ana Reyes"
        assert data["release_by"] == 40

    def test_claimed_request_is_final(self, make_client):
        client = make_client(registrar_staff(), make_mock_session(single=_ledger(RequestStatus.CLAIMED)))
        for action in ("hold", "decline", "restore"):
            assert client.post(f"/api/requests/21/{action}").status_code == 422

    def test_accounting_cannot_assess(self, make_client):
        client = make_client(accounting(), make_mock_session(single=_ledger(RequestStatus.REVIEWED)))
        assert client.post("/api/requests/21/assess").status_code == 403

    def test_concurrent_change_is_409(self, make_client):
        session = make_mock_session(single=_ledger(RequestStatus.REVIEWED))
        session.commit = AsyncMock(side_effect=StaleDataError("version"))
        client = make_client(registrar_staff(), session)

        resp = client.post("/api/requests/21/assess")

        assert resp.status_code == 409
        assert resp.json()["title"] == "Conflict"


# ---------------------------------------------------------------------------
# Side states, assignment, confirmation
# ---------------------------------------------------------------------------


class TestSideStates:
    def test_hold_then_restore(self, make_client):
        ledger = _ledger(RequestStatus.REVIEWED)
        client = make_client(registrar_staff(), make_mock_session(single=ledger))

        held = client.post("/api/requests/21/hold", json={"remarks": "Incomplete clearance"})
        assert held.json()["data"]["is_held"] is True
        assert held.json()["data"]["remarks"] == "Incomplete clearance"

        restored = client.post("/api/requests/21/restore")
        data = restored.json()["data"]
        assert data["status"] == "Pending"
        assert data["is_held"] is False
        assert restored.json()["message"] == f"Request {TR} restored"

    def test_decline_whole_request(self, make_client):
        client = make_client(registrar_staff(), make_mock_session(single=_ledger(RequestStatus.ASSESSED)))
        resp = client.post("/api/requests/21/decline", json={"remarks": "Duplicate"})
        data = resp.json()["data"]
        assert data["status"] == "Pending"
        assert data["is_declined"] is True


class TestAssignment:
    def test_head_assigns_staff(self, make_client):
        ledger = _ledger()
        client = make_client(registrar_head(), make_mock_session(single=ledger))
        staff = make_user(id=40, role=UserRole.STAFF)

        with patch("audres_api.services.lifecycle.get_user", AsyncMock(return_value=staff)):
            resp = client.post("/api/requests/21/assign", json={"staff_id": 40})

        assert resp.status_code == 200
        assert resp.json()["data"]["process_by"] == 40

    def test_assigning_a_student_is_404(self, make_client):
        client = make_client(registrar_head(), make_mock_session(single=_ledger()))
        student = make_user(id=41, role=UserRole.STUDENT)

        with patch("audres_api.services.lifecycle.get_user", AsyncMock(return_value=student)):
            resp = client.post("/api/requests/21/assign", json={"staff_id": 41})

        assert resp.status_code == 404

    def test_staff_id_required(self, make_client):
        client = make_client(registrar_head(), make_mock_session(single=_ledger()))
        resp = client.post("/api/requests/21/assign", json={})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "staff_id is required"

    def test_staff_cannot_assign(self, make_client):
        client = make_client(registrar_staff(), make_mock_session(single=_ledger()))
        assert client.post("/api/requests/21/assign", json={"staff_id": 40}).status_code == 403


class TestConfirmation:
    def test_confirm_self_registered_request(self, make_client):
        ledger = _ledger(pending_verification=True)
        requester = make_user(id=10, pending_verification=True)
        client = make_client(registrar_staff(), make_mock_session(single=ledger))

        with patch("audres_api.services.lifecycle.get_user", AsyncMock(return_value=requester)):
            resp = client.post("/api/requests/21/confirm")

        assert resp.status_code == 200
        assert resp.json()["data"]["pending_verification"] is False
        assert requester.pending_verification is False

    def test_confirm_twice_is_422(self, make_client):
        client = make_client(registrar_staff(), make_mock_session(single=_ledger()))
        with patch("audres_api.services.lifecycle.get_user", AsyncMock(return_value=None)):
            resp = client.post("/api/requests/21/confirm")
        assert resp.status_code == 422
