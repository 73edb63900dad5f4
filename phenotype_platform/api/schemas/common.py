"""
Shared API DTOs: error responses and rate-limit details.

ProblemDetail follows RFC 9457 (supersedes RFC 7807) for machine-parseable
error responses.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details error response.

    All API error responses except the health endpoint use this format
    with Content-Type application/problem+json.
    """

    model_config = ConfigDict(from_attributes=True)

    type: str = Field(
        "about:blank",
        description="URI reference identifying the problem type",
    )
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(
        None, description="Human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None,
        description="URI reference identifying the specific occurrence of the problem",
    )


class RateLimitInfo(BaseModel):
    """Attached to 429 responses so clients know when to retry."""

    model_config = ConfigDict(populate_by_name=True)

    remaining: int = Field(0, description="Requests left in the current window")
    reset_at: str = Field(
        ..., alias="resetAt", description="ISO-8601 time the window resets"
    )
    reset_in: str = Field(
        ..., alias="resetIn", description="Human-readable wait, e.g. '12 minutes'"
    )
