# This project was developed with assistance from AI tools.
"""Request ledger and item schemas."""

from datetime import datetime
from decimal import Decimal

from audres_db.enums import ItemStatus, RequestStatus, UserRole
from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import Pagination


class ItemCreate(BaseModel):
    """One document line in a submission."""

    type: str = Field(min_length=1, max_length=150)
    purpose: str | None = Field(default=None, max_length=255)
    quantity: int = Field(default=1, ge=1)
    school_year: str | None = Field(default=None, max_length=20)
    semester: str | None = Field(default=None, max_length=20)


class RequestCreate(BaseModel):
    items: list[ItemCreate] = Field(min_length=1)


class PublicRequestCreate(RequestCreate):
    """Submission from a requester without an account; registers one on the way."""

    first_name: str = Field(min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    school_id: str = Field(min_length=1, max_length=50)
    role: UserRole = UserRole.STUDENT
    course: str | None = Field(default=None, max_length=100)
    year_level: str | None = Field(default=None, max_length=50)
    campus: str | None = Field(default=None, max_length=100)

    @field_validator("role")
    @classmethod
    def _requester_role(cls, v: UserRole) -> UserRole:
        if v not in UserRole.requester_roles():
            raise ValueError("Self-registration is limited to requester roles")
        return v

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tr: str
    type: str
    purpose: str | None = None
    quantity: int
    school_year: str | None = None
    semester: str | None = None
    proof: str | None = None
    status: ItemStatus
    remarks: str | None = None
    unit_price: Decimal = Decimal("0")
    line_total: Decimal = Decimal("0")


class LedgerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tr: str
    request_by: int
    process_by: int | None = None
    release_by: int | None = None
    status: RequestStatus
    is_held: bool = False
    is_declined: bool = False
    pay_mode: str | None = None
    payment_proofs: list[str] = Field(default_factory=list)
    remarks: str | None = None
    claimed_by: str | None = None
    pending_verification: bool = False
    assign_at: datetime | None = None
    review_at: datetime | None = None
    approve_at: datetime | None = None
    assess_at: datetime | None = None
    pay_at: datetime | None = None
    verify_at: datetime | None = None
    turn_at: datetime | None = None
    claimed_at: datetime | None = None
    hold_at: datetime | None = None
    decline_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[ItemResponse] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")

    @field_validator("payment_proofs", mode="before")
    @classmethod
    def _proofs_list(cls, v):
        return list(v or [])


class LedgerResult(BaseModel):
    """A ledger after a mutation, with the message to show the user once."""

    data: LedgerResponse
    message: str


class LedgerListResponse(BaseModel):
    data: list[LedgerResponse]
    pagination: Pagination


class TransitionBody(BaseModel):
    """Optional inputs shared by the lifecycle endpoints."""

    remarks: str | None = Field(default=None, max_length=2000)
    staff_id: int | None = None
    claimant: str | None = Field(default=None, max_length=200)


class AuditEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime | None = None
    event_type: str
    user_id: str | None = None
    user_role: str | None = None
    event_data: dict | None = None
