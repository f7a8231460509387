"""GitHub OAuth app adapter."""

import logging
from typing import Optional
from urllib.parse import urlencode

from modules.auth.exceptions import ProviderRejectedError
from modules.auth.models import NormalizedIdentity, Provider

from .base import OAuthCodeAdapter

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_URL = "https://api.github.com/user"
EMAILS_URL = "https://api.github.com/user/emails"
SCOPES = "user:email read:user"
API_ACCEPT = "application/vnd.github.v3+json"


def split_name(name: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Split a display name on the first space into (first, last)."""
    if not name or not name.strip():
        return None, None
    first, _, last = name.strip().partition(" ")
    return first, (last.strip() or None)


class GitHubAdapter(OAuthCodeAdapter):
    """GitHub, with a separate OAuth app for native clients when configured."""

    provider = Provider.GITHUB

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        params = {
            "client_id": self.credentials().client_id,
            "redirect_uri": redirect_uri,
            "scope": SCOPES,
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str, mobile: bool = False) -> str:
        credentials = self.credentials(mobile=mobile)
        response = await self._request(
            "POST",
            TOKEN_URL,
            json={
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        body = self._json(response)
        if body.get("error"):
            description = body.get("error_description") or body["error"]
            raise ProviderRejectedError(
                f"GitHub login failed: {description}",
                details={"provider_error": body["error"]},
            )
        return self._require_access_token(body)

    async def fetch_identity(self, access_token: str) -> NormalizedIdentity:
        headers = {"Authorization": f"Bearer {access_token}", "Accept": API_ACCEPT}
        response = await self._request("GET", USER_URL, headers=headers)
        if not response.is_success:
            raise self._rejected_token(response)
        profile = self._json(response)
        if profile.get("id") is None:
            raise ProviderRejectedError("Invalid GitHub token")

        # A missing email is left for identity resolution to reject
        email = profile.get("email") or await self._primary_verified_email(headers)

        first_name, last_name = split_name(profile.get("name"))
        return NormalizedIdentity(
            provider=self.provider,
            external_id=str(profile["id"]),
            email=email,
            first_name=first_name,
            last_name=last_name,
            avatar_url=profile.get("avatar_url"),
        )

    async def _primary_verified_email(self, headers: dict) -> Optional[str]:
        """Look up the primary verified address when the profile email is private."""
        response = await self._request("GET", EMAILS_URL, headers=headers)
        if not response.is_success:
            logger.info("GitHub email lookup failed with status %s", response.status_code)
            return None
        try:
            entries = response.json()
        except ValueError:
            return None
        if not isinstance(entries, list):
            return None
        for entry in entries:
            if isinstance(entry, dict) and entry.get("primary") and entry.get("verified"):
                return entry.get("email")
        return None
