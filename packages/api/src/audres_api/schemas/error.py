# This project was developed with assistance from AI tools.
"""Problem-details body returned for every error response (RFC 7807)."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body shared by all handlers in ``main.py``."""

    type: str = Field(default="about:blank", description="Problem type URI.")
    title: str = Field(description="Reason phrase for the status code.")
    status: int = Field(description="HTTP status code, repeated in the body.")
    detail: str = Field(default="", description="What went wrong for this request.")
    request_id: str = Field(default="", description="Value of x-request-id, generated when absent.")
    errors: list[dict[str, Any]] | None = Field(
        default=None,
        description="Field-level validation failures, when the request body or query was rejected.",
    )
