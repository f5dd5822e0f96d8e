"""Back-office authorization policies."""

from typing import Protocol

from storefront.core.config import get_settings
from storefront.schemas.auth import UserContext


class AuthorizationPolicy(Protocol):
    """Decides whether an actor may use the seller back-office."""

    def is_admin(self, user: UserContext | None) -> bool: ...


class AllowlistPolicy:
    """Grants back-office access by metadata role or by email allowlist."""

    def __init__(self, admin_emails: list[str], admin_roles: list[str]) -> None:
        self.admin_emails = {email.lower() for email in admin_emails}
        self.admin_roles = set(admin_roles)

    def is_admin(self, user: UserContext | None) -> bool:
        if user is None:
            return False
        if user.role and user.role in self.admin_roles:
            return True
        return bool(user.email) and user.email.lower() in self.admin_emails


def get_authorization_policy() -> AuthorizationPolicy:
    """Build the policy from settings. Override this dependency to swap it."""
    settings = get_settings()
    return AllowlistPolicy(
        admin_emails=settings.admin_emails_list,
        admin_roles=settings.admin_roles_list,
    )
