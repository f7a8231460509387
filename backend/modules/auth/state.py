"""
Signed OAuth state parameter.

The state round-trips through the provider and comes back on the callback.
It carries which provider and delivery flow the login started with, plus
the app deep link for mobile logins, so the callback needs no server-side
storage. Format: ``<base64url(json)>.<base64url(hmac-sha256)>``.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import secrets
from typing import Optional

from pydantic import ValidationError

from .models import Flow, OAuthState, Provider

logger = logging.getLogger(__name__)

SEPARATOR = "."


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


class StateCodec:
    """Encode and verify state parameters with a process-wide secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("State secret must not be empty")
        self._key = secret.encode("utf-8")

    def encode(
        self,
        provider: Provider,
        flow: Flow = Flow.LANDING,
        redirect_target: Optional[str] = None,
    ) -> str:
        payload = {"p": provider.value, "f": flow.value, "n": secrets.token_hex(16)}
        if redirect_target:
            payload["r"] = redirect_target
        data = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        return f"{data}{SEPARATOR}{self._sign(data)}"

    def decode(self, state: Optional[str]) -> Optional[OAuthState]:
        """
        Verify and unpack a state string.

        Returns None for anything that is not a state we issued: missing
        separator, bad signature, undecodable payload or unknown values.
        """
        if not state or SEPARATOR not in state:
            return None

        data, _, signature = state.rpartition(SEPARATOR)
        expected = self._sign(data)
        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("Rejected OAuth state with bad signature")
            return None

        try:
            payload = json.loads(_b64decode(data))
            return OAuthState(
                provider=Provider(payload["p"]),
                flow=Flow(payload.get("f") or Flow.LANDING.value),
                redirect_target=payload.get("r"),
                nonce=payload["n"],
            )
        except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError, ValidationError):
            logger.warning("Rejected OAuth state with malformed payload")
            return None

    def _sign(self, data: str) -> str:
        digest = hmac.new(self._key, data.encode("utf-8"), hashlib.sha256).digest()
        return _b64encode(digest)
