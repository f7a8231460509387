"""Identity provider adapters."""

from .apple import AppleAdapter, AppleKeySet
from .base import OAuthCodeAdapter, ProviderAdapter
from .facebook import FacebookAdapter
from .factory import get_adapters, parse_provider
from .github import GitHubAdapter
from .google import GoogleAdapter

__all__ = [
    "ProviderAdapter",
    "OAuthCodeAdapter",
    "GoogleAdapter",
    "GitHubAdapter",
    "FacebookAdapter",
    "AppleAdapter",
    "AppleKeySet",
    "get_adapters",
    "parse_provider",
]
