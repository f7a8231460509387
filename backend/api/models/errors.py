"""
Error response models.

JSON endpoints answer failures with ``{"message", "error", "details"}``.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str
    error: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
