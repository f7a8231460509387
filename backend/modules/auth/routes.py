"""
Auth API endpoints.

Mounted under /api/auth. The redirect flow endpoints (start, callback)
answer with redirects or HTML pages; everything else is JSON, with domain
errors rendered by the app-level MedInvestError handler.
"""

import html
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from api.dependencies import (
    get_auth_service,
    get_broker,
    get_oauth_config,
    get_password_auth_service,
)
from api.middleware.auth import get_bearer_token, get_current_user
from shared.models import AuthenticatedUser

from .broker import OAuthBroker
from .config import CALLBACK_PATH, OAuthConfig
from .interfaces import IAuthService
from .models import (
    AccessTokenResponse,
    AuthResponse,
    AuthResult,
    CodeExchangeRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    SocialLoginRequest,
    UpdateProfileRequest,
    UserProfile,
)
from .passwords import PasswordAuthService

router = APIRouter()


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(token=result.token, user=result.user)


# ============================================================================
# Redirect flow
# ============================================================================


@router.get("/{provider}/start")
async def start_login(
    provider: str,
    flow: Optional[str] = Query(default=None, description="landing, popup or mobile"),
    redirect_target: Optional[str] = Query(default=None, description="App deep link for mobile logins"),
    app_redirect_uri: Optional[str] = Query(default=None, include_in_schema=False),
    broker: OAuthBroker = Depends(get_broker),
) -> RedirectResponse:
    """
    Begin a redirect login.

    Redirects the browser to the provider's consent screen.
    """
    url = broker.start(provider, flow, redirect_target or app_redirect_uri)
    return RedirectResponse(url=url, status_code=302)


@router.get("/callback")
async def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    broker: OAuthBroker = Depends(get_broker),
) -> Response:
    """
    Provider redirect target shared by every redirect provider.

    The response shape (redirect, popup page or deep link) follows the flow
    recorded in the state parameter.
    """
    return await broker.callback(code, state, error, error_description)


@router.get("/mobile-callback", response_class=HTMLResponse)
async def mobile_callback(token: Optional[str] = None, error: Optional[str] = None) -> HTMLResponse:
    """Landing page for http(s) deep links opened outside the app."""
    if token:
        message = "Authentication successful. You can close this window."
    elif error:
        message = f"Authentication failed: {error}"
    else:
        message = "Authentication in progress..."
    return HTMLResponse(f"<html><body><p>{html.escape(message)}</p></body></html>")


@router.get("/oauth-debug")
async def oauth_debug(
    request: Request,
    config: OAuthConfig = Depends(get_oauth_config),
) -> dict:
    """
    Show which redirect URIs must be registered with each provider.

    Reports configuration presence only, never secrets.
    """
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    origin = f"{proto}://{host}"

    callback_uris = [config.callback_uri]
    request_callback = f"{origin}{CALLBACK_PATH}"
    if request_callback not in callback_uris:
        callback_uris.append(request_callback)

    return {
        "origin": origin,
        "callbackUri": config.callback_uri,
        "callbackUrisToRegister": callback_uris,
        "providers": {
            name: name in config.configured_providers()
            for name in ("google", "github", "facebook", "apple")
        },
    }


# ============================================================================
# Native sign-in
# ============================================================================


@router.post("/social", response_model=AuthResponse)
async def social_login(
    request: SocialLoginRequest,
    broker: OAuthBroker = Depends(get_broker),
) -> AuthResponse:
    """
    Sign in with a token from a native provider SDK.

    Apple identity tokens are verified against Apple's published keys;
    other providers' access tokens are checked against their profile API.
    """
    return _auth_response(await broker.social_login(request))


@router.post("/{provider}/token", response_model=AccessTokenResponse)
async def exchange_code(
    provider: str,
    request: CodeExchangeRequest,
    broker: OAuthBroker = Depends(get_broker),
) -> AccessTokenResponse:
    """Exchange an authorization code for a provider access token."""
    access_token = await broker.exchange_code(
        provider, request.code, request.redirect_uri, request.platform
    )
    return AccessTokenResponse(access_token=access_token)


# ============================================================================
# Password accounts
# ============================================================================


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    request: RegisterRequest,
    service: PasswordAuthService = Depends(get_password_auth_service),
) -> AuthResponse:
    """Create an email/password account and sign it in."""
    return _auth_response(await service.register(request))


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    service: PasswordAuthService = Depends(get_password_auth_service),
) -> AuthResponse:
    return _auth_response(await service.login(request))


@router.post("/demo", response_model=AuthResponse)
async def demo_login(
    service: PasswordAuthService = Depends(get_password_auth_service),
) -> AuthResponse:
    """Sign in as the shared demo account."""
    return _auth_response(await service.demo())


# ============================================================================
# Current user
# ============================================================================


@router.get("/me", response_model=UserProfile)
async def get_me(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> UserProfile:
    return await service.get_profile(user.id)


@router.patch("/me", response_model=UserProfile)
async def update_me(
    request: UpdateProfileRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> UserProfile:
    """Update first name, last name and/or phone."""
    return await service.update_profile(user.id, request)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(get_bearer_token),
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Revoke the session behind the presented credential."""
    await service.logout(token)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Revoke every session of the caller, on all devices."""
    await service.logout_all(user)
    return MessageResponse(message="Logged out from all devices")
