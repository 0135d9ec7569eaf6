# This project was developed with assistance from AI tools.
"""
Domain enums for the registrar document request lifecycle.

Shared domain types used by both SQLAlchemy models (db package)
and Pydantic schemas (api package).
"""

import enum


class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    REVIEWED = "Reviewed"
    ASSESSED = "Assessed"
    FOR_PAYMENT = "For Payment"
    FOR_VERIFICATION = "For Verification"
    VERIFIED = "Verified"
    FOR_RELEASE = "For Release"
    CLAIMED = "Claimed"

    @property
    def rank(self) -> int:
        """Position along the main chain; For Payment and For Verification share a rank."""
        return _STATUS_RANK[self]

    def is_before(self, other: "RequestStatus") -> bool:
        return self.rank < other.rank

    @classmethod
    def terminal_statuses(cls) -> frozenset["RequestStatus"]:
        """Statuses from which no further transition is allowed."""
        return frozenset({cls.CLAIMED})

    @classmethod
    def approved_statuses(cls) -> frozenset["RequestStatus"]:
        """Statuses counted as approved (payment verified or later)."""
        return frozenset({cls.VERIFIED, cls.FOR_RELEASE, cls.CLAIMED})

    @classmethod
    def on_process_statuses(cls) -> frozenset["RequestStatus"]:
        """Statuses counted as in progress between review and verification."""
        return frozenset({cls.REVIEWED, cls.ASSESSED, cls.FOR_PAYMENT, cls.FOR_VERIFICATION})

    @classmethod
    def released_statuses(cls) -> frozenset["RequestStatus"]:
        """Statuses in which the documents have been printed for release."""
        return frozenset({cls.FOR_RELEASE, cls.CLAIMED})

    @classmethod
    def valid_sources(cls) -> dict["RequestStatus", frozenset["RequestStatus"]]:
        """Statuses a staff-set status may be entered from.

        Pending and Reviewed are absent: Pending is reached only by decline
        or restore, and Reviewed is derived from item decisions.
        """
        return {
            cls.ASSESSED: frozenset({cls.REVIEWED, cls.ASSESSED}),
            cls.FOR_PAYMENT: frozenset({cls.ASSESSED}),
            cls.FOR_VERIFICATION: frozenset(
                {cls.ASSESSED, cls.FOR_PAYMENT, cls.FOR_VERIFICATION}
            ),
            cls.VERIFIED: frozenset({cls.ASSESSED, cls.FOR_PAYMENT, cls.FOR_VERIFICATION}),
            cls.FOR_RELEASE: frozenset({cls.VERIFIED}),
            cls.CLAIMED: frozenset({cls.FOR_RELEASE}),
        }


_STATUS_RANK: dict[RequestStatus, int] = {
    RequestStatus.PENDING: 0,
    RequestStatus.REVIEWED: 1,
    RequestStatus.ASSESSED: 2,
    RequestStatus.FOR_PAYMENT: 3,
    RequestStatus.FOR_VERIFICATION: 3,
    RequestStatus.VERIFIED: 4,
    RequestStatus.FOR_RELEASE: 5,
    RequestStatus.CLAIMED: 6,
}


class ItemStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    DECLINED = "Declined"


class UserRole(str, enum.Enum):
    STUDENT = "student"
    ALUMNI = "alumni"
    FORMER = "former"
    TEST = "test"
    STAFF = "staff"
    HEAD = "head"
    ADMIN = "admin"
    ACCOUNTING = "accounting"

    @classmethod
    def requester_roles(cls) -> frozenset["UserRole"]:
        """Roles that submit document requests."""
        return frozenset({cls.STUDENT, cls.ALUMNI, cls.FORMER, cls.TEST})

    @classmethod
    def registrar_roles(cls) -> frozenset["UserRole"]:
        """Roles that process requests at the registrar's office."""
        return frozenset({cls.STAFF, cls.HEAD, cls.ADMIN})

    @classmethod
    def staff_roles(cls) -> frozenset["UserRole"]:
        """Roles that can be recorded as a processing or releasing actor."""
        return cls.registrar_roles() | {cls.ACCOUNTING}
