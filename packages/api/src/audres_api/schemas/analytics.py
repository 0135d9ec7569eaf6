# This project was developed with assistance from AI tools.
"""Analytics response schemas for the registrar dashboard."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from .rating import RatingSummary


class CountShare(BaseModel):
    """A ledger count and its share of all ledgers in the window."""

    count: int = 0
    percentage: float = Field(0.0, description="Share of total requests, 1 decimal")


class StatusCount(BaseModel):
    status: str
    count: int
    percentage: float


class StageDuration(BaseModel):
    """Average time spent reaching a lifecycle stage."""

    duration: str = Field(..., description="Human readable, e.g. '1 day 2 hrs 5 mins'")
    hours: float
    sample_size: int = Field(..., description="Number of ledgers in the average")
    speed: str = Field(..., description="Quick, Fast, Moderate, Standard, Slow, Warning or Critical")


class RequesterVolume(BaseModel):
    user_id: int
    name: str
    role: str
    course: str | None = None
    total_requests: int


class LabelCount(BaseModel):
    """One bucket of a categorical distribution."""

    label: str | None
    count: int
    percentage: float | None = None


class DocumentVolume(BaseModel):
    type: str
    total_quantity: int
    total_requests: int


class DocumentStatusCount(BaseModel):
    type: str
    status: str
    count: int


class DocumentTotals(BaseModel):
    """Per-type totals for the window."""

    type: str
    total_quantity: int
    total_requests: int
    unit_price: Decimal
    revenue: Decimal = Field(..., description="Quantity x price over lines not declined")
    paper_usage: int = Field(..., description="Copies in ledgers at For Release or Claimed")


class TrendPoint(BaseModel):
    label: str
    count: int = 0
    revenue: Decimal = Decimal("0")


class StaffEntry(BaseModel):
    """One row of a staff leaderboard."""

    staff_id: int | None = Field(None, description="None groups declines nobody was assigned to")
    display_name: str
    total: int
    percentage: float = Field(..., description="Share of the leaderboard total, 2 decimals")
    statuses: dict[str, int] = Field(default_factory=dict)


class RegistrationGrowth(BaseModel):
    current: int
    previous: int
    growth: str = Field(..., description="e.g. '+25.00%', 'No Progress', '+3 New Users'")
    total_users: int
    to_verify_users: int


class AnalyticsReport(BaseModel):
    """Everything the dashboard shows for one range selection."""

    range: str
    range_start: date | None = None
    range_end: date | None = None
    current_period_label: str
    previous_period_label: str

    total_requests: int
    approved: CountShare
    on_process: CountShare
    pending: CountShare
    declined: CountShare
    on_hold: CountShare
    to_verify: int
    status_breakdown: list[StatusCount]

    approval_time: StageDuration
    review_time: StageDuration
    assessment_time: StageDuration

    active_requesters: int
    top_requesters: list[RequesterVolume]
    role_distribution: list[LabelCount]
    course_distribution: list[LabelCount]
    year_level_distribution: list[LabelCount]

    top_documents: list[DocumentVolume]
    top_purposes: list[LabelCount]
    purpose_distribution: list[LabelCount]
    document_status: list[DocumentStatusCount]
    documents: list[DocumentTotals]
    total_quantity: int
    total_revenue: Decimal
    total_paper_usage: int

    trend: list[TrendPoint]

    staff_processed: list[StaffEntry]
    overall_processed: int
    staff_successful: list[StaffEntry]
    overall_successful: int
    staff_declined: list[StaffEntry]
    overall_declined: int

    registrations: RegistrationGrowth
    ratings: RatingSummary
    computed_at: datetime
