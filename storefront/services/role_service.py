# storefront/services/role_service.py
import logging

from storefront.core.auth import CurrentUser
from storefront.repositories.errors import RemoteStoreError
from storefront.repositories.user_repo import RoleRepository

logger = logging.getLogger(__name__)


class RoleService:
    """
    Single place that decides whether a user is an admin.

    Rules:
      - e-mail listed in ADMIN_EMAILS => admin
      - otherwise a user_roles row with role='admin' => admin
      - lookup failure => not admin
    """

    def __init__(self, role_repo: RoleRepository, admin_emails: list[str] | None = None):
        self.role_repo = role_repo
        self.admin_emails = {e.strip().lower() for e in admin_emails or [] if e.strip()}

    async def is_admin(self, user: CurrentUser | None) -> bool:
        if user is None:
            return False
        if user.email.lower() in self.admin_emails:
            return True
        try:
            return await self.role_repo.has_role(user.id, "admin")
        except RemoteStoreError as exc:
            logger.error("Error checking admin status for %s: %s", user.id, exc)
            return False
