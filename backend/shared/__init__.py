"""
Shared infrastructure for the MedInvest backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- repository: Base repository over the Supabase client

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings, clean_env_value
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    MedInvestError,
    NotFoundError,
    ValidationError,
    ConflictError,
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
)
from .models import AuthenticatedUser

__all__ = [
    "Settings",
    "get_settings",
    "clean_env_value",
    "get_supabase_client",
    "reset_client_cache",
    "MedInvestError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "AuthenticationError",
    "AuthorizationError",
    "ExternalServiceError",
    "AuthenticatedUser",
]
