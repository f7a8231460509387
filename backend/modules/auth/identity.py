"""
Identity resolution.

Maps a provider-asserted identity onto exactly one local user, keyed by
lower-cased email. A returning user is updated in place (provider linkage,
login time and whichever profile fields the provider supplied). A new user
is created together with default notification preferences.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from .exceptions import DuplicateEmailError, IdentityUnresolvableError
from .interfaces import IUserRepository
from .models import NormalizedIdentity, ResolvedIdentity, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityResolver:
    """Find-or-create users from normalized identities."""

    def __init__(self, users: IUserRepository):
        self._users = users

    async def resolve(self, identity: NormalizedIdentity) -> ResolvedIdentity:
        """
        Resolve an identity to a user id.

        Two concurrent first logins for the same email both end up on the
        same user: the loser of the insert race re-reads the winner's row
        and updates it as a returning user.

        Raises:
            IdentityUnresolvableError: The identity has no email
        """
        if not identity.email or not identity.email.strip():
            raise IdentityUnresolvableError()

        email = normalize_email(identity.email)
        existing = self._users.get_by_email(email)
        if existing is not None:
            self._link_returning_user(existing, identity)
            return ResolvedIdentity(user_id=existing.id, is_new_user=False)

        try:
            user = self._users.create_with_preferences(self._new_user_fields(email, identity))
        except DuplicateEmailError:
            existing = self._users.get_by_email(email)
            if existing is None:
                raise
            logger.info("Lost sign-up race for user %s; treating as returning", existing.id)
            self._link_returning_user(existing, identity)
            return ResolvedIdentity(user_id=existing.id, is_new_user=False)

        return ResolvedIdentity(user_id=user.id, is_new_user=True)

    def _link_returning_user(self, user: User, identity: NormalizedIdentity) -> None:
        now = datetime.now(timezone.utc)
        fields: dict[str, Any] = {
            "provider": identity.provider.value,
            "provider_user_id": identity.external_id,
            "last_login_at": now,
        }
        # Only overwrite profile fields the provider actually sent
        for name in ("first_name", "last_name", "avatar_url"):
            value = getattr(identity, name)
            if value:
                fields[name] = value
        self._users.update(user.id, fields)

    @staticmethod
    def _new_user_fields(email: str, identity: NormalizedIdentity) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        return {
            "email": email,
            "first_name": identity.first_name,
            "last_name": identity.last_name,
            "avatar_url": identity.avatar_url,
            "provider": identity.provider.value,
            "provider_user_id": identity.external_id,
            "is_verified": True,
            "email_verified_at": now,
            "last_login_at": now,
        }
