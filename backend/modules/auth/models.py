"""
Authentication module data models.

Internal records (User, Session) mirror the database rows. The camelCase
request/response models are what the mobile and web clients exchange with
the API.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel


class Provider(str, Enum):
    """External identity providers."""

    GOOGLE = "google"
    GITHUB = "github"
    FACEBOOK = "facebook"
    APPLE = "apple"

    @property
    def display_name(self) -> str:
        return {
            Provider.GOOGLE: "Google",
            Provider.GITHUB: "GitHub",
            Provider.FACEBOOK: "Facebook",
            Provider.APPLE: "Apple",
        }[self]


# Providers that go through the browser redirect + callback dance.
# Apple is only ever reached with a client-supplied identity token.
REDIRECT_PROVIDERS = (Provider.GOOGLE, Provider.GITHUB, Provider.FACEBOOK)


class Flow(str, Enum):
    """How a finished redirect login is handed back to the client."""

    LANDING = "landing"
    POPUP = "popup"
    MOBILE = "mobile"


class OAuthState(BaseModel):
    """Decoded contents of a signed state parameter."""

    provider: Provider
    flow: Flow = Flow.LANDING
    redirect_target: Optional[str] = None
    nonce: str

    model_config = {"frozen": True}


class NormalizedIdentity(BaseModel):
    """An identity asserted by a provider, reduced to the fields we keep."""

    provider: Provider
    external_id: str = Field(..., description="Provider-scoped user id")
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"frozen": True}


class ResolvedIdentity(BaseModel):
    """Outcome of mapping an external identity onto a local user."""

    user_id: str
    is_new_user: bool

    model_config = {"frozen": True}


class User(BaseModel):
    """A row of the users table."""

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    provider: str = "email"
    provider_user_id: Optional[str] = None
    password_hash: Optional[str] = None
    is_verified: bool = False
    is_accredited: bool = False
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Session(BaseModel):
    """A row of the user_sessions table."""

    id: str
    user_id: str
    token: str
    expires_at: datetime
    created_at: Optional[datetime] = None


class IssuedSession(BaseModel):
    """A freshly created session and the bearer credential that names it."""

    session_id: str
    bearer_token: str
    expires_at: datetime

    model_config = {"frozen": True}


# ============================================================================
# Client-facing models
# ============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserSummary(_CamelModel):
    """The user fields returned alongside a bearer credential."""

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    provider: str
    is_verified: bool = False
    is_accredited: bool = False
    created_at: Optional[datetime] = None
    full_name: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            avatar_url=user.avatar_url,
            provider=user.provider,
            is_verified=user.is_verified,
            is_accredited=user.is_accredited,
            created_at=user.created_at,
            full_name=user.full_name or None,
        )

    @model_serializer(mode="wrap")
    def _omit_blank_full_name(self, handler):
        data = handler(self)
        for key in ("fullName", "full_name"):
            if key in data and not data[key]:
                del data[key]
        return data

    def to_client(self) -> dict:
        """JSON-ready camelCase dict, as embedded in redirects and pages."""
        return self.model_dump(mode="json", by_alias=True)


class UserProfile(UserSummary):
    """Full profile returned by GET /me."""

    phone: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        summary = UserSummary.from_user(user)
        return cls(**summary.model_dump(), phone=user.phone, updated_at=user.updated_at)


class AuthResult(BaseModel):
    """A completed sign-in: credential plus who it belongs to."""

    token: str
    user: UserSummary
    is_new_user: bool = False


class AuthResponse(_CamelModel):
    """Response body for JSON sign-in endpoints."""

    token: str
    user: UserSummary


class SocialLoginRequest(_CamelModel):
    """Body of POST /auth/social (native SDK sign-in)."""

    provider: Optional[str] = None
    token: Optional[str] = None
    identity_token: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None


class CodeExchangeRequest(_CamelModel):
    """Body of POST /auth/{provider}/token."""

    code: Optional[str] = None
    redirect_uri: Optional[str] = None
    platform: Optional[str] = None


class AccessTokenResponse(BaseModel):
    access_token: str


class RegisterRequest(BaseModel):
    """Email/password sign-up."""

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(_CamelModel):
    """Partial profile update; omitted fields are left untouched."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
