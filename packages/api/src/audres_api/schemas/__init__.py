# This project was developed with assistance from AI tools.
"""Response pieces shared by several routers."""

from pydantic import BaseModel


class Pagination(BaseModel):
    """Window metadata for ledger listings."""

    total: int
    offset: int
    limit: int
    has_more: bool


class MessageResponse(BaseModel):
    """Plain acknowledgement carrying a one-shot message for the client."""

    message: str
