# storefront/repositories/user_repo.py
from supabase import AsyncClient

from storefront.repositories.cart_repo import execute


class RoleRepository:
    """
    Data access layer for user_roles.

    Responsibilities:
      - Pure queries, no FastAPI, no business logic
    """

    def __init__(self, client: AsyncClient, table: str = "user_roles"):
        self.client = client
        self.table = table

    async def has_role(self, user_id: str, role: str) -> bool:
        """Return True if a (user_id, role) row exists."""
        rows = await execute(
            self.client.table(self.table)
            .select("role")
            .eq("user_id", user_id)
            .eq("role", role)
            .limit(1)
        )
        return bool(rows)
