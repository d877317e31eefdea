"""Authentication context consumed by the sync component.

Sign-in flows live outside this package; the core only needs to know
who the current user is and whether the session is established.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class AuthStatus(str, Enum):
    """Session status as reported by the auth provider."""

    pending = "pending"
    authenticated = "authenticated"
    unauthenticated = "unauthenticated"


@dataclass(frozen=True)
class AuthUser:
    """Identity of the signed-in user."""

    id: str
    email: str | None = None


class AuthContext(Protocol):
    """Source of the current user identity."""

    @property
    def status(self) -> AuthStatus:
        """Current session status."""
        ...

    @property
    def user(self) -> AuthUser | None:
        """Signed-in user, or None."""
        ...


class StaticAuthContext:
    """Mutable in-process auth context.

    Used by tests and by hosts that resolve the session themselves.
    """

    def __init__(
        self, user: AuthUser | None = None, status: AuthStatus | None = None
    ) -> None:
        self._user = user
        if status is None:
            status = AuthStatus.authenticated if user else AuthStatus.unauthenticated
        self._status = status

    @property
    def status(self) -> AuthStatus:
        return self._status

    @property
    def user(self) -> AuthUser | None:
        return self._user

    def sign_in(self, user: AuthUser) -> None:
        """Mark the session authenticated for a user."""
        self._user = user
        self._status = AuthStatus.authenticated

    def sign_out(self) -> None:
        """Drop the current identity."""
        self._user = None
        self._status = AuthStatus.unauthenticated


def current_user_id(auth: AuthContext) -> str | None:
    """User id when authenticated with a stable identity, else None."""
    if auth.status != AuthStatus.authenticated or auth.user is None or not auth.user.id:
        return None
    return auth.user.id
