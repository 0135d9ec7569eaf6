# This project was developed with assistance from AI tools.
"""Caller identity as seen by routes and services."""

from audres_db.enums import UserRole
from pydantic import BaseModel, ConfigDict, Field


class DataScope(BaseModel):
    """Which ledgers a caller may read: only their own, or the whole registry."""

    own_data_only: bool = False
    user_id: str | None = None
    full_registry: bool = False


class UserContext(BaseModel):
    """Resolved caller, built once per request from the bearer token."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    email: str
    name: str
    data_scope: DataScope = Field(default_factory=DataScope)


class TokenPayload(BaseModel):
    """Claims read from a verified access token."""

    sub: str
    email: str = ""
    preferred_username: str = ""
    name: str = ""
    given_name: str = ""
    family_name: str = ""
    realm_access: dict = Field(default_factory=dict)
