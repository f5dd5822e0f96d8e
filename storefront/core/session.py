"""Per-session state shared by the cart, address book and checkout."""

import asyncio
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from storefront.core.exceptions import CheckoutInProgress
from storefront.core.local_storage import LocalStorage
from storefront.schemas.auth import UserContext

TOKEN_LENGTH = 64


def generate_session_token() -> str:
    """Generate a cryptographically secure 64-character hex session token."""
    return secrets.token_hex(TOKEN_LENGTH // 2)


def is_valid_session_token(token: str | None) -> bool:
    if not token or len(token) != TOKEN_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in token)


@dataclass
class Notification:
    """A transient message for the user, shown once."""

    message: str
    type: str = "success"


@dataclass
class SessionState:
    """State owned by one client session.

    Passed explicitly into the services that read or mutate it; nothing in
    the package keeps session state at module level.
    """

    token: str
    storage: LocalStorage
    user: UserContext | None = None
    notifications: list[Notification] = field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def owner_id(self) -> str:
        """User ID for records created in this session, or 'guest'."""
        return str(self.user.user_id) if self.user else "guest"

    def notify(self, message: str, type: str = "success") -> None:
        self.notifications.append(Notification(message=message, type=type))

    def drain_notifications(self) -> list[Notification]:
        drained, self.notifications = self.notifications, []
        return drained


class SessionLocks:
    """One asyncio lock per session token.

    Checkout holds the lock for the whole processing step so a second submit
    from the same session is rejected while the first is in flight. A submit
    that arrives afterwards re-reads the stored cart, which is then empty.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, token: str) -> asyncio.Lock:
        lock = self._locks.get(token)
        if lock is None:
            lock = self._locks[token] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, token: str) -> AsyncIterator[None]:
        """Hold the session lock, failing fast if it is already held.

        Raises:
            CheckoutInProgress: If another checkout of the session is running.
        """
        lock = self.get(token)
        if lock.locked():
            raise CheckoutInProgress()
        try:
            async with lock:
                yield
        finally:
            if not lock.locked():
                self._locks.pop(token, None)
