"""Sign in with Apple: identity token verification against Apple's JWKS."""

import logging
import time
from typing import Callable, Optional

import httpx
import jwt

from modules.auth.config import OAuthConfig
from modules.auth.exceptions import ProviderUnavailableError, TokenInvalidError
from modules.auth.models import NormalizedIdentity, Provider

from .base import ProviderAdapter

logger = logging.getLogger(__name__)

APPLE_ISSUER = "https://appleid.apple.com"
APPLE_JWKS_URL = "https://appleid.apple.com/auth/keys"
MIN_REFRESH_SECONDS = 60


class AppleKeySet:
    """
    Cached copy of Apple's signing keys.

    Keys are reused for ``ttl_seconds``. A token signed with a key id we
    have not seen triggers a refetch, since Apple rotates keys without
    notice, but at most once every ``min_refresh_seconds``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        ttl_seconds: int = 86400,
        clock: Callable[[], float] = time.monotonic,
        min_refresh_seconds: int = MIN_REFRESH_SECONDS,
    ):
        self._http = http_client
        self._ttl = ttl_seconds
        self._clock = clock
        self._min_refresh = min_refresh_seconds
        self._keys: dict[str, dict] = {}
        self._fetched_at: Optional[float] = None
        self._attempted_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        return self._fetched_at is not None and (self._clock() - self._fetched_at) < self._ttl

    def _recently_attempted(self) -> bool:
        return self._attempted_at is not None and (self._clock() - self._attempted_at) < self._min_refresh

    async def get(self, kid: str) -> Optional[dict]:
        if self._is_fresh() and kid in self._keys:
            return self._keys[kid]
        if self._keys and self._recently_attempted():
            # Unknown kids must not turn into one JWKS fetch per request
            return self._keys.get(kid)
        await self._refresh()
        return self._keys.get(kid)

    async def _refresh(self) -> None:
        self._attempted_at = self._clock()
        try:
            response = await self._http.get(APPLE_JWKS_URL)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to fetch Apple JWKS: %s", type(e).__name__)
            if self._keys:
                # Serve the stale set rather than failing every Apple login
                return
            raise ProviderUnavailableError("Apple") from e

        keys = body.get("keys", []) if isinstance(body, dict) else []
        self._keys = {key["kid"]: key for key in keys if isinstance(key, dict) and key.get("kid")}
        self._fetched_at = self._clock()
        logger.debug("Fetched %d Apple signing keys", len(self._keys))


class AppleAdapter(ProviderAdapter):
    """Verifies identity tokens minted by Apple for our app or web service."""

    provider = Provider.APPLE

    def __init__(
        self,
        config: OAuthConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        key_set: Optional[AppleKeySet] = None,
    ):
        super().__init__(config, http_client)
        self._keys = key_set or AppleKeySet(self._http, ttl_seconds=config.jwks_cache_ttl_seconds)

    async def verify_identity_token(
        self,
        identity_token: str,
        fallback: Optional[NormalizedIdentity] = None,
    ) -> NormalizedIdentity:
        """
        Verify an Apple identity token and build the identity it asserts.

        Apple only includes the user's name on the very first authorization,
        and only to the client, so names and avatar come from ``fallback``.
        The email claim wins over the client-supplied one.

        Raises:
            TokenInvalidError: Bad signature, issuer, audience or expiry
            ProviderUnavailableError: Apple's key set could not be fetched
        """
        try:
            header = jwt.get_unverified_header(identity_token)
        except jwt.PyJWTError as e:
            raise TokenInvalidError("Invalid Apple identity token") from e

        kid = header.get("kid")
        jwk = await self._keys.get(kid) if kid else None
        if jwk is None:
            logger.info("Apple identity token signed with unknown key id")
            raise TokenInvalidError("Invalid Apple identity token")

        try:
            signing_key = jwt.PyJWK(jwk, algorithm="RS256").key
            claims = jwt.decode(
                identity_token,
                signing_key,
                algorithms=["RS256"],
                audience=list(self._config.apple_audiences),
                issuer=APPLE_ISSUER,
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenInvalidError("Apple identity token has expired") from e
        except jwt.PyJWTError as e:
            logger.info("Apple identity token rejected: %s", type(e).__name__)
            raise TokenInvalidError("Invalid Apple identity token") from e

        if not claims.get("sub"):
            raise TokenInvalidError("Invalid Apple identity token")

        return NormalizedIdentity(
            provider=self.provider,
            external_id=str(claims["sub"]),
            email=claims.get("email") or (fallback.email if fallback else None),
            first_name=fallback.first_name if fallback else None,
            last_name=fallback.last_name if fallback else None,
            avatar_url=fallback.avatar_url if fallback else None,
        )
