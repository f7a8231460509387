"""Base classes for identity provider adapters."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from modules.auth.config import OAuthConfig, ProviderCredentials
from modules.auth.exceptions import (
    ConfigurationMissingError,
    ProviderRejectedError,
    ProviderUnavailableError,
)
from modules.auth.models import NormalizedIdentity, Provider

logger = logging.getLogger(__name__)


class ProviderAdapter(ABC):
    """Shared plumbing for talking to one identity provider.

    Every outbound call goes through ``_request`` so that transport
    failures surface as ProviderUnavailableError instead of leaking
    httpx exceptions into the broker.
    """

    provider: Provider

    def __init__(self, config: OAuthConfig, http_client: Optional[httpx.AsyncClient] = None):
        self._config = config
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)

    @property
    def display_name(self) -> str:
        return self.provider.display_name

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s request to %s failed: %s", self.display_name, url, type(e).__name__)
            raise ProviderUnavailableError(self.display_name) from e

    def _json(self, response: httpx.Response) -> dict:
        """Parse a provider response body that must be a JSON object."""
        try:
            body = response.json()
        except ValueError as e:
            logger.warning(
                "%s returned a non-JSON body (status %s)", self.display_name, response.status_code
            )
            raise ProviderUnavailableError(self.display_name) from e
        if not isinstance(body, dict):
            raise ProviderUnavailableError(self.display_name)
        return body


class OAuthCodeAdapter(ProviderAdapter):
    """A provider reached through the authorization-code redirect flow."""

    def credentials(self, mobile: bool = False) -> ProviderCredentials:
        credentials = self._config.credentials_for(self.provider, mobile=mobile)
        if credentials is None:
            raise ConfigurationMissingError(f"{self.display_name} OAuth is not configured")
        return credentials

    @abstractmethod
    def authorization_url(self, state: str, redirect_uri: str) -> str:
        """Build the consent-screen URL the browser is sent to."""
        pass

    @abstractmethod
    async def exchange_code(self, code: str, redirect_uri: str, mobile: bool = False) -> str:
        """Trade an authorization code for a provider access token.

        Raises:
            ProviderRejectedError: The provider refused the code
            ProviderUnavailableError: The provider could not be reached
        """
        pass

    @abstractmethod
    async def fetch_identity(self, access_token: str) -> NormalizedIdentity:
        """Load the user behind an access token.

        Raises:
            ProviderRejectedError: The token was not accepted
            ProviderUnavailableError: The provider could not be reached
        """
        pass

    def _require_access_token(self, body: dict) -> str:
        access_token = body.get("access_token")
        if not access_token:
            raise ProviderRejectedError(f"{self.display_name} did not return an access token")
        return access_token

    def _rejected_token(self, response: httpx.Response) -> ProviderRejectedError:
        logger.info(
            "%s rejected access token (status %s)", self.display_name, response.status_code
        )
        return ProviderRejectedError(f"Invalid {self.display_name} token")
