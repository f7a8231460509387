"""
Broker configuration.

OAuthConfig is built once from Settings and passed to every component that
needs credentials or public URLs. Nothing below the API layer reads the
environment directly.
"""

from typing import Optional

from pydantic import BaseModel

from shared.config import Settings

from .models import Provider

CALLBACK_PATH = "/api/auth/callback"
DEFAULT_BASE_URL = "http://localhost:5000"


class ProviderCredentials(BaseModel):
    client_id: str
    client_secret: str = ""

    model_config = {"frozen": True}


class OAuthConfig(BaseModel):
    """Immutable view of everything the OAuth flows need."""

    base_url: str = DEFAULT_BASE_URL
    app_root_url: str = DEFAULT_BASE_URL
    google: Optional[ProviderCredentials] = None
    github: Optional[ProviderCredentials] = None
    github_mobile: Optional[ProviderCredentials] = None
    facebook: Optional[ProviderCredentials] = None
    apple_audiences: tuple[str, ...] = ()
    timeout_seconds: float = 10.0
    jwks_cache_ttl_seconds: int = 86400

    model_config = {"frozen": True}

    @property
    def callback_uri(self) -> str:
        """The single redirect URI registered with every provider."""
        return f"{self.base_url}{CALLBACK_PATH}"

    def credentials_for(
        self, provider: Provider, mobile: bool = False
    ) -> Optional[ProviderCredentials]:
        """
        Credentials for a provider, or None when it is not configured.

        GitHub has a web app and a native-client app; each side falls back
        to the other when only one is configured.
        """
        if provider == Provider.GITHUB:
            preferred = (self.github_mobile, self.github) if mobile else (self.github, self.github_mobile)
            return preferred[0] or preferred[1]
        return {
            Provider.GOOGLE: self.google,
            Provider.FACEBOOK: self.facebook,
        }.get(provider)

    def configured_providers(self) -> list[str]:
        names = [p.value for p in Provider if self.credentials_for(p)]
        if self.apple_audiences:
            names.append(Provider.APPLE.value)
        return names

    @classmethod
    def from_settings(cls, settings: Settings) -> "OAuthConfig":
        base_url = resolve_base_url(
            settings.oauth_callback_domain,
            settings.public_domain,
            settings.oauth_redirect_base,
        )
        audiences = [settings.apple_client_id, *settings.apple_bundle_ids]
        return cls(
            base_url=base_url,
            app_root_url=(settings.app_root_url or base_url).rstrip("/"),
            google=_credentials(settings.google_web_client_id, settings.google_web_client_secret),
            github=_credentials(settings.github_client_id, settings.github_client_secret),
            github_mobile=_credentials(
                settings.github_mobile_client_id, settings.github_mobile_client_secret
            ),
            facebook=_credentials(settings.facebook_app_id, settings.facebook_app_secret),
            apple_audiences=tuple(a for a in audiences if a),
            timeout_seconds=settings.provider_timeout_seconds,
            jwks_cache_ttl_seconds=settings.jwks_cache_ttl_seconds,
        )


def _credentials(client_id: str, client_secret: str) -> Optional[ProviderCredentials]:
    if not client_id:
        return None
    return ProviderCredentials(client_id=client_id, client_secret=client_secret)


def resolve_base_url(callback_domain: str, public_domain: str, redirect_base: str = "") -> str:
    """
    Pick the public base URL providers redirect back to.

    A full redirect base URL wins, then an explicit callback domain.
    Otherwise the public domain is used (minus the dev-server port)
    unless it points at localhost.
    """
    if redirect_base:
        return redirect_base.strip().rstrip("/")
    if callback_domain:
        return f"https://{_strip_scheme(callback_domain)}"
    if public_domain:
        domain = _strip_scheme(public_domain).replace(":5000", "")
        if "localhost" not in domain:
            return f"https://{domain}"
    return DEFAULT_BASE_URL


def _strip_scheme(domain: str) -> str:
    domain = domain.strip().rstrip("/")
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            return domain[len(prefix):]
    return domain
