from __future__ import annotations

import logging
from typing import Optional

from warung_pos.api.client import ApiClient
from warung_pos.api.gateways import AuthGateway
from warung_pos.constants import DEFAULT_ROLE_PERMISSIONS, ERROR_INVALID_LOGIN, ROLE_ADMIN
from warung_pos.db.dao import CredentialDAO
from warung_pos.errors import AuthorizationError, PosError
from warung_pos.models.user import User

logger = logging.getLogger(__name__)


def role_has_permission(user: Optional[User], perm: str) -> bool:
    if not user:
        return False
    return perm in DEFAULT_ROLE_PERMISSIONS.get((user.role or "").upper(), set())


def require_permission(user: Optional[User], perm: str, message: str) -> None:
    if not role_has_permission(user, perm):
        raise AuthorizationError(message)


def is_admin(user: Optional[User]) -> bool:
    return bool(user) and (user.role or "").upper() == ROLE_ADMIN


class AuthService:
    def __init__(self, api: ApiClient, credentials: CredentialDAO):
        self.gateway = AuthGateway(api)
        self.credentials = credentials
        self._current_user: Optional[User] = credentials.get_user()
        self._last_error: str = ""

    def get_last_error(self) -> str:
        return self._last_error

    def get_current_user(self) -> Optional[User]:
        # The API client may have cleared the credential after a 401.
        if self._current_user and not self.credentials.get_token():
            self._current_user = None
        return self._current_user

    async def login(self, username: str, password: str, outlet_id: str) -> bool:
        self._last_error = ""
        if not username.strip() or not password:
            self._last_error = ERROR_INVALID_LOGIN
            return False

        try:
            token, user = await self.gateway.login(username.strip(), password, outlet_id)
        except PosError as e:
            logger.warning(f"Login failed for {username!r}: {e.message}")
            self._last_error = e.message
            return False

        if not token:
            self._last_error = ERROR_INVALID_LOGIN
            return False

        self.credentials.save(token, user)
        self._current_user = user
        logger.info(f"Logged in as {user.username} ({user.role})")
        return True

    def logout(self) -> None:
        self.credentials.clear()
        self._current_user = None
        self._last_error = ""

    def has_permission(self, perm: str) -> bool:
        """Check if the current user has a given permission."""
        return role_has_permission(self.get_current_user(), perm)
