"""
Account service for authenticated callers.

Backs GET/PATCH /me and the logout endpoints.
"""

import logging
from typing import Any

from shared.exceptions import NotFoundError
from shared.models import AuthenticatedUser

from .interfaces import IAuthService, IUserRepository
from .models import UpdateProfileRequest, UserProfile
from .sessions import SessionIssuer

logger = logging.getLogger(__name__)


class AuthService(IAuthService):
    """Profile reads/updates and session revocation."""

    def __init__(self, users: IUserRepository, issuer: SessionIssuer):
        self._users = users
        self._issuer = issuer

    async def get_profile(self, user_id: str) -> UserProfile:
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return UserProfile.from_user(user)

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> UserProfile:
        """
        Apply a partial profile update.

        Only fields present in the request body are written; an explicit
        null clears the phone number but never a name.
        """
        provided = request.model_dump(exclude_unset=True)
        fields: dict[str, Any] = {}
        for name in ("first_name", "last_name"):
            if provided.get(name):
                fields[name] = provided[name].strip()
        if "phone" in provided:
            fields["phone"] = provided["phone"] or None

        if not fields:
            return await self.get_profile(user_id)

        user = self._users.update(user_id, fields)
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return UserProfile.from_user(user)

    async def logout(self, bearer_token: str) -> bool:
        return await self._issuer.revoke(bearer_token)

    async def logout_all(self, user: AuthenticatedUser) -> int:
        return await self._issuer.revoke_all(user.id)
