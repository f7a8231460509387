"""Facebook Login adapter (Graph API v18.0)."""

from urllib.parse import urlencode

from modules.auth.exceptions import ProviderRejectedError
from modules.auth.models import NormalizedIdentity, Provider

from .base import OAuthCodeAdapter

GRAPH_VERSION = "v18.0"
AUTHORIZE_URL = f"https://www.facebook.com/{GRAPH_VERSION}/dialog/oauth"
TOKEN_URL = f"https://graph.facebook.com/{GRAPH_VERSION}/oauth/access_token"
ME_URL = "https://graph.facebook.com/me"
SCOPES = "email,public_profile"
PROFILE_FIELDS = "id,name,email,first_name,last_name,picture.type(large)"

DOMAIN_HINT = (
    "Facebook app configuration error: add this site's domain to "
    "App Domains and the callback URL to Valid OAuth Redirect URIs "
    "in the Facebook developer console."
)


class FacebookAdapter(OAuthCodeAdapter):
    provider = Provider.FACEBOOK

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        params = {
            "client_id": self.credentials().client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "scope": SCOPES,
            "response_type": "code",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str, mobile: bool = False) -> str:
        credentials = self.credentials()
        response = await self._request(
            "GET",
            TOKEN_URL,
            params={
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        body = self._json(response)
        error = body.get("error")
        if error:
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            if "domain" in message and "app's domains" in message:
                raise ProviderRejectedError(DOMAIN_HINT, details={"provider_error": message})
            raise ProviderRejectedError(
                f"Facebook login failed: {message or 'Unknown error'}",
                details={"provider_error": message},
            )
        return self._require_access_token(body)

    async def fetch_identity(self, access_token: str) -> NormalizedIdentity:
        response = await self._request(
            "GET",
            ME_URL,
            params={"fields": PROFILE_FIELDS, "access_token": access_token},
        )
        if not response.is_success:
            raise self._rejected_token(response)
        profile = self._json(response)
        if not profile.get("id"):
            raise ProviderRejectedError("Invalid Facebook token")

        picture = profile.get("picture") or {}
        avatar_url = (picture.get("data") or {}).get("url") if isinstance(picture, dict) else None
        return NormalizedIdentity(
            provider=self.provider,
            external_id=str(profile["id"]),
            email=profile.get("email"),
            first_name=profile.get("first_name"),
            last_name=profile.get("last_name"),
            avatar_url=avatar_url,
        )
