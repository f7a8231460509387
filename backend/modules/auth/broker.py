"""
OAuth broker - the login flows end to end.

Redirect flow:  start() -> provider consent screen -> callback()
Native flow:    social_login() with a token the client SDK obtained
Code exchange:  exchange_code() for native clients that ran the consent
                screen themselves but hold no client secret
"""

import logging
from typing import Optional

from fastapi.responses import Response

from providers.apple import AppleAdapter
from providers.base import OAuthCodeAdapter, ProviderAdapter
from providers.factory import parse_provider

from .config import OAuthConfig
from .delivery import CallbackOutcome, get_delivery, render_error_page
from .exceptions import (
    InvalidRequestError,
    InvalidStateError,
    OAuthFlowError,
    ProviderDeclinedError,
)
from .identity import IdentityResolver
from .interfaces import IUserRepository
from .models import (
    AuthResult,
    Flow,
    NormalizedIdentity,
    OAuthState,
    Provider,
    REDIRECT_PROVIDERS,
    SocialLoginRequest,
    UserSummary,
)
from .sessions import SessionIssuer
from .state import StateCodec

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Authentication failed. Please try again."
MOBILE_PLATFORMS = ("ios", "android", "mobile")


class OAuthBroker:
    """Coordinates state, provider adapters, identity resolution and sessions."""

    def __init__(
        self,
        config: OAuthConfig,
        codec: StateCodec,
        adapters: dict[Provider, ProviderAdapter],
        resolver: IdentityResolver,
        issuer: SessionIssuer,
        users: IUserRepository,
    ):
        self._config = config
        self._codec = codec
        self._adapters = adapters
        self._resolver = resolver
        self._issuer = issuer
        self._users = users

    # ========================================================================
    # Redirect flow
    # ========================================================================

    def start(
        self,
        provider_name: str,
        flow: Optional[str] = None,
        redirect_target: Optional[str] = None,
    ) -> str:
        """
        Build the provider consent URL for a new login.

        Args:
            provider_name: google, github or facebook
            flow: landing (default), popup or mobile
            redirect_target: App deep link; required for the mobile flow

        Returns:
            Authorization URL to redirect the browser to

        Raises:
            InvalidRequestError: Unknown provider/flow or missing deep link
            ConfigurationMissingError: Provider has no client id configured
        """
        adapter = self._code_adapter(provider_name)
        try:
            selected_flow = Flow(flow) if flow else Flow.LANDING
        except ValueError:
            raise InvalidRequestError(f"Unknown flow: {flow}")
        if selected_flow == Flow.MOBILE and not redirect_target:
            raise InvalidRequestError("redirect_target is required for mobile logins")

        state = self._codec.encode(adapter.provider, selected_flow, redirect_target)
        logger.info(
            "Starting %s login (%s flow), callback %s",
            adapter.provider.value,
            selected_flow.value,
            self._config.callback_uri,
        )
        return adapter.authorization_url(state, self._config.callback_uri)

    async def callback(
        self,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> Response:
        """
        Finish a redirect login and deliver the result.

        Never raises: every failure becomes a response shaped by the flow
        recorded in the state, or a plain error page if the state cannot be
        trusted.
        """
        decoded = self._codec.decode(state) if state else None
        try:
            result = await self._complete_callback(code, state, decoded, error, error_description)
            outcome = CallbackOutcome(state=decoded, token=result.token, user=result.user)
        except InvalidStateError as e:
            logger.error("OAuth callback rejected: %s", e.message)
            outcome = CallbackOutcome(state=decoded, error=e)
        except OAuthFlowError as e:
            logger.warning(
                "OAuth callback failed for %s (%s): %s",
                decoded.provider.value if decoded else "unknown",
                e.kind,
                e.message,
            )
            outcome = CallbackOutcome(state=decoded, error=e)
        except Exception:
            logger.exception("Unexpected error in OAuth callback")
            return render_error_page(UNEXPECTED_ERROR_MESSAGE, status_code=500)

        if decoded is None:
            return render_error_page(outcome.error.message, outcome.error.status_code)
        return get_delivery(decoded.flow, self._config.app_root_url).render(outcome)

    async def _complete_callback(
        self,
        code: Optional[str],
        state: Optional[str],
        decoded: Optional[OAuthState],
        error: Optional[str],
        error_description: Optional[str],
    ) -> AuthResult:
        if error:
            raise ProviderDeclinedError(f"Authentication failed: {error_description or error}")
        if not code or not state:
            raise InvalidRequestError("Missing authorization code or state")
        if decoded is None:
            raise InvalidStateError()
        if decoded.flow == Flow.MOBILE and not decoded.redirect_target:
            raise InvalidStateError()

        adapter = self._code_adapter(decoded.provider.value)
        logger.debug("Exchanging %s code (length %d)", decoded.provider.value, len(code))
        access_token = await adapter.exchange_code(code, self._config.callback_uri)
        identity = await adapter.fetch_identity(access_token)
        return await self.sign_in(identity)

    # ========================================================================
    # Native flows
    # ========================================================================

    async def social_login(self, request: SocialLoginRequest) -> AuthResult:
        """
        Sign in with a token obtained by a native SDK.

        Apple tokens are verified locally against Apple's keys. Other
        providers' access tokens are checked by loading the profile.
        Client-supplied profile fields only fill gaps the provider left.

        Raises:
            InvalidRequestError: Missing or unknown provider/token
            TokenInvalidError / ProviderRejectedError: Token was not accepted
            IdentityUnresolvableError: No email could be determined
        """
        token = request.identity_token or request.token
        if not request.provider or not token:
            raise InvalidRequestError("Provider and token are required")

        provider = parse_provider(request.provider)
        if provider is None:
            raise InvalidRequestError("Invalid provider")

        adapter = self._adapters.get(provider)
        if provider == Provider.APPLE and isinstance(adapter, AppleAdapter):
            identity = await adapter.verify_identity_token(token, fallback=self._client_identity(provider, request))
        elif isinstance(adapter, OAuthCodeAdapter):
            asserted = await adapter.fetch_identity(token)
            identity = _fill_gaps(asserted, request)
        else:
            raise InvalidRequestError("Invalid provider")

        return await self.sign_in(identity)

    async def exchange_code(
        self,
        provider_name: str,
        code: Optional[str],
        redirect_uri: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> str:
        """Swap an authorization code for a provider access token on the client's behalf."""
        adapter = self._code_adapter(provider_name)
        if not code:
            raise InvalidRequestError("Authorization code is required")
        mobile = (platform or "").lower() in MOBILE_PLATFORMS
        return await adapter.exchange_code(code, redirect_uri or self._config.callback_uri, mobile=mobile)

    # ========================================================================
    # Shared
    # ========================================================================

    async def sign_in(self, identity: NormalizedIdentity) -> AuthResult:
        """Resolve an identity, open a session and build the client payload."""
        resolved = await self._resolver.resolve(identity)
        session = await self._issuer.issue(resolved.user_id)
        user = self._users.get_by_id(resolved.user_id)
        if user is None:
            raise RuntimeError(f"User {resolved.user_id} vanished after sign-in")
        logger.info(
            "Signed in user %s via %s (new=%s)",
            user.id,
            identity.provider.value,
            resolved.is_new_user,
        )
        return AuthResult(
            token=session.bearer_token,
            user=UserSummary.from_user(user),
            is_new_user=resolved.is_new_user,
        )

    def _code_adapter(self, provider_name: Optional[str]) -> OAuthCodeAdapter:
        provider = parse_provider(provider_name)
        adapter = self._adapters.get(provider) if provider in REDIRECT_PROVIDERS else None
        if not isinstance(adapter, OAuthCodeAdapter):
            raise InvalidRequestError(f"Unknown provider: {provider_name}")
        return adapter

    @staticmethod
    def _client_identity(provider: Provider, request: SocialLoginRequest) -> NormalizedIdentity:
        return NormalizedIdentity(
            provider=provider,
            external_id="",
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            avatar_url=request.avatar_url,
        )


def _fill_gaps(identity: NormalizedIdentity, request: SocialLoginRequest) -> NormalizedIdentity:
    return identity.model_copy(
        update={
            "email": identity.email or request.email,
            "first_name": identity.first_name or request.first_name,
            "last_name": identity.last_name or request.last_name,
            "avatar_url": identity.avatar_url or request.avatar_url,
        }
    )
