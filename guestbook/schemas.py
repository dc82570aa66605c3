"""
Pydantic schemas for request/response validation.

This module contains:
- Form models for incoming submissions
- Response models for the JSON endpoints
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


# =============================================================================
# Pydantic Request Models
# =============================================================================

class MessageForm(BaseModel):
    """
    Fields of a public submission or an admin edit.

    Every field defaults to an empty string so a missing field reaches the
    sanitizer and is reported as a validation failure rather than a 422.
    Length and character rules are enforced by guestbook.sanitizer after
    sanitization, not here.
    """
    author_name: str = Field(
        default="",
        validation_alias=AliasChoices("author_name", "nombre"),
        description="Visitor name",
    )
    body: str = Field(
        default="",
        validation_alias=AliasChoices("body", "mensaje"),
        description="Message text",
    )
    verification_token: str = Field(
        default="",
        validation_alias=AliasChoices("verification_token", "g-recaptcha-response"),
        description="Human-verification token; only presence is checked",
    )


# =============================================================================
# Pydantic Response Models
# =============================================================================

class MessageResponse(BaseModel):
    """A single message in the admin listing."""
    id: int = Field(..., description="Message id")
    author_name: str = Field(..., description="Sanitized author name")
    body: str = Field(..., description="Sanitized message text")

    model_config = {"from_attributes": True}


class MessagesPageResponse(BaseModel):
    """
    Response model for GET /mensajes.

    total and total_pages describe the filtered set, ignoring pagination.
    """
    data: list[MessageResponse] = Field(default_factory=list, description="Messages on this page")
    total: int = Field(..., ge=0, description="Messages matching the search filter")
    page: int = Field(..., ge=1, description="Page number served")
    page_size: int = Field(..., ge=1, description="Page size used")
    total_pages: int = Field(..., ge=0, description="ceil(total / page_size)")


class ImageResponse(BaseModel):
    """Gallery entry."""
    id: int = Field(..., description="Image id")
    filename: str = Field(..., description="Stored file name under /uploads")

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
