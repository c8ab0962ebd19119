# storefront/repositories/order_repo.py
from datetime import datetime, timezone
from typing import Any

from supabase import AsyncClient

from storefront.repositories.cart_repo import execute


class OrderRepository:
    """
    Data access layer for the remote orders table.

    Orders are written once at checkout; afterwards only `status`
    changes (admin).
    """

    def __init__(self, client: AsyncClient, table: str = "orders"):
        self.client = client
        self.table = table

    def _rows(self):
        return self.client.table(self.table)

    async def create(self, order: dict[str, Any]) -> dict[str, Any]:
        rows = await execute(self._rows().insert(order))
        return rows[0] if rows else order

    async def list_for_owner(
        self,
        owner_id: str,
        skip: int = 0,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        return await execute(
            self._rows()
            .select("*")
            .eq("user_id", owner_id)
            .order("created_at", desc=True)
            .range(skip, skip + limit - 1)
        )

    async def list_all(
        self,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        query = self._rows().select("*")
        if status:
            query = query.eq("status", status)
        return await execute(
            query.order("created_at", desc=True).range(skip, skip + limit - 1)
        )

    async def get_by_id(self, order_id: str) -> dict[str, Any] | None:
        rows = await execute(self._rows().select("*").eq("id", order_id).limit(1))
        return rows[0] if rows else None

    async def update_status(self, order_id: str, status: str) -> dict[str, Any] | None:
        rows = await execute(
            self._rows()
            .update(
                {
                    "status": status,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            .eq("id", order_id)
        )
        return rows[0] if rows else None
