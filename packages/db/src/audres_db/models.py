# This project was developed with assistance from AI tools.
"""
AUDRES -- domain models

Registrar document request models covering the document catalog,
requesters and staff, request ledgers and their line items, the
transaction-code counter, portal ratings, and the audit trail.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from .enums import ItemStatus, RequestStatus, UserRole


class User(Base):
    """Requester or staff member, linked to an identity-provider subject when known."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(255), unique=True, nullable=True, index=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    school_id = Column(String(50), unique=True, nullable=True)
    role = Column(Enum(UserRole, name="user_role", native_enum=False, length=20), nullable=False)
    course = Column(String(100), nullable=True)
    year_level = Column(String(50), nullable=True)
    campus = Column(String(100), nullable=True)
    archived = Column(Boolean, nullable=False, default=False)
    pending_verification = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)

    def __repr__(self):
        return f"<User(id={self.id}, role='{self.role}')>"


class CatalogEntry(Base):
    """Document type offered by the registrar, with price and turnaround."""

    __tablename__ = "documents"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_documents_amount_nonnegative"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(150), unique=True, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False, default=0)
    processing_days = Column(Integer, nullable=False, default=10)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<CatalogEntry(type='{self.type}', amount={self.amount})>"


class TransactionSequence(Base):
    """Per-month counter backing transaction-code generation."""

    __tablename__ = "transaction_sequences"

    period = Column(String(4), primary_key=True)  # YYMM
    last_value = Column(Integer, nullable=False, default=0)


class DocumentRequest(Base):
    """One submission envelope: the aggregate the lifecycle operates on."""

    __tablename__ = "requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tr = Column(String(32), unique=True, nullable=False, index=True)
    request_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    process_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    release_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(
        Enum(RequestStatus, name="request_status", native_enum=False, length=32),
        nullable=False,
        default=RequestStatus.PENDING,
    )
    pay_mode = Column(String(50), nullable=True)
    payment_proofs = Column(JSON, nullable=False, default=list)
    remarks = Column(Text, nullable=True)
    claimed_by = Column(String(200), nullable=True)
    archived = Column(Boolean, nullable=False, default=False)
    pending_verification = Column(Boolean, nullable=False, default=False)

    assign_at = Column(DateTime(timezone=True), nullable=True)
    review_at = Column(DateTime(timezone=True), nullable=True)
    approve_at = Column(DateTime(timezone=True), nullable=True)
    assess_at = Column(DateTime(timezone=True), nullable=True)
    pay_at = Column(DateTime(timezone=True), nullable=True)
    verify_at = Column(DateTime(timezone=True), nullable=True)
    turn_at = Column(DateTime(timezone=True), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    hold_at = Column(DateTime(timezone=True), nullable=True)
    decline_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    items = relationship(
        "RequestItem",
        back_populates="request",
        order_by="RequestItem.id",
    )

    def __repr__(self):
        return f"<DocumentRequest(tr='{self.tr}', status='{self.status}')>"


class RequestItem(Base):
    """One document line under a request, joined to it by transaction code."""

    __tablename__ = "items"
    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_items_quantity_positive"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    tr = Column(String(32), ForeignKey("requests.tr"), nullable=False, index=True)
    type = Column(String(150), nullable=False, index=True)
    purpose = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    school_year = Column(String(20), nullable=True)
    semester = Column(String(20), nullable=True)
    proof = Column(String(500), nullable=True)
    status = Column(
        Enum(ItemStatus, name="item_status", native_enum=False, length=16),
        nullable=False,
        default=ItemStatus.PENDING,
    )
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    request = relationship("DocumentRequest", back_populates="items")

    def __repr__(self):
        return f"<RequestItem(id={self.id}, tr='{self.tr}', status='{self.status}')>"


class Rating(Base):
    """Portal satisfaction rating left by a visitor."""

    __tablename__ = "ratings"
    __table_args__ = (CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    rating = Column(Integer, nullable=False)
    ip = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Rating(id={self.id}, rating={self.rating})>"


class AuditEvent(Base):
    """Append-only audit trail. INSERT + SELECT only -- no UPDATE or DELETE."""

    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    prev_hash = Column(String(64), nullable=True)
    user_id = Column(String(255), nullable=True)
    user_role = Column(String(50), nullable=True)
    event_type = Column(String(100), nullable=False, index=True)
    request_id = Column(Integer, nullable=True, index=True)
    event_data = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<AuditEvent(id={self.id}, type='{self.event_type}')>"
