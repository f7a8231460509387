"""Factory functions for creating provider adapters."""

from typing import Optional

import httpx

from modules.auth.config import OAuthConfig
from modules.auth.models import Provider

from .apple import AppleAdapter
from .base import ProviderAdapter
from .facebook import FacebookAdapter
from .github import GitHubAdapter
from .google import GoogleAdapter


def get_adapters(
    config: OAuthConfig, http_client: Optional[httpx.AsyncClient] = None
) -> dict[Provider, ProviderAdapter]:
    """Build one adapter per supported provider.

    All adapters share ``http_client`` so connections are pooled; when it is
    omitted a client with the configured timeout is created.

    Returns:
        Dictionary mapping each Provider to its adapter.
    """
    client = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)
    return {
        Provider.GOOGLE: GoogleAdapter(config, client),
        Provider.GITHUB: GitHubAdapter(config, client),
        Provider.FACEBOOK: FacebookAdapter(config, client),
        Provider.APPLE: AppleAdapter(config, client),
    }


def parse_provider(name: Optional[str]) -> Optional[Provider]:
    """Parse a provider path/body value ('google', 'GitHub', ...).

    Returns:
        The Provider, or None for unknown names.
    """
    if not name:
        return None
    try:
        return Provider(name.strip().lower())
    except ValueError:
        return None
