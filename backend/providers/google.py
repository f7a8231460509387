"""Google OAuth 2.0 / OpenID Connect adapter."""

from urllib.parse import urlencode

from modules.auth.exceptions import ProviderRejectedError
from modules.auth.models import NormalizedIdentity, Provider

from .base import OAuthCodeAdapter

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
SCOPES = "openid profile email"


class GoogleAdapter(OAuthCodeAdapter):
    provider = Provider.GOOGLE

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        params = {
            "client_id": self.credentials().client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": SCOPES,
            "state": state,
            "access_type": "offline",
            "prompt": "select_account",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str, mobile: bool = False) -> str:
        credentials = self.credentials()
        response = await self._request(
            "POST",
            TOKEN_URL,
            data={
                "code": code,
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        body = self._json(response)
        if body.get("error"):
            description = body.get("error_description") or "Unknown error"
            raise ProviderRejectedError(
                f"Google login failed: {body['error']} - {description}",
                details={"provider_error": body["error"]},
            )
        return self._require_access_token(body)

    async def fetch_identity(self, access_token: str) -> NormalizedIdentity:
        response = await self._request(
            "GET", USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
        )
        if not response.is_success:
            raise self._rejected_token(response)
        profile = self._json(response)
        if not profile.get("sub"):
            raise ProviderRejectedError("Invalid Google token")
        return NormalizedIdentity(
            provider=self.provider,
            external_id=str(profile["sub"]),
            email=profile.get("email"),
            first_name=profile.get("given_name"),
            last_name=profile.get("family_name"),
            avatar_url=profile.get("picture"),
        )
