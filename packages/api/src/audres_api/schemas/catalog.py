# This project was developed with assistance from AI tools.
"""Document catalog schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CatalogEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    amount: Decimal
    processing_days: int
    archived: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CatalogListResponse(BaseModel):
    data: list[CatalogEntryResponse]
    count: int


class CatalogEntryCreate(BaseModel):
    type: str = Field(min_length=1, max_length=150)
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    processing_days: int = Field(default=10, ge=0)


class CatalogEntryUpdate(BaseModel):
    """Partial update; unset fields are left alone."""

    type: str | None = Field(default=None, min_length=1, max_length=150)
    amount: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    processing_days: int | None = Field(default=None, ge=0)
