"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from typing import Optional
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    The caller behind a verified bearer credential.

    Produced by the session issuer once the credential signature, its
    session row and the user row have all been checked, and handed to
    route handlers via dependency injection.
    """

    id: str = Field(..., description="User ID (UUID)")
    email: str = Field(..., description="User's email address (lower-cased)")
    session_id: str = Field(..., description="Session row backing the credential")
    first_name: Optional[str] = Field(None, description="Given name")
    last_name: Optional[str] = Field(None, description="Family name")
    is_verified: bool = Field(default=False, description="Whether the account is verified")
    is_accredited: bool = Field(default=False, description="Whether the investor is accredited")

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }
