# storefront/repositories/cart_repo.py
from datetime import datetime, timezone
from typing import Any, Callable

from supabase import AsyncClient

from storefront.repositories.errors import translate_error

ChangeCallback = Callable[[dict[str, Any]], None]


async def execute(query) -> list[dict[str, Any]]:
    """
    Run a PostgREST query and return its rows.

    Raises:
        RemoteStoreError: on any SDK or transport failure.
    """
    try:
        response = await query.execute()
    except Exception as exc:
        raise translate_error(exc) from exc
    return response.data or []


class CartRepository:
    """
    Data access layer for the remote cart_items table.

    - Every query is scoped to one owner (user_id).
    - Returns raw row dicts; mapping to CartLineItem is the store's job.
    """

    def __init__(self, client: AsyncClient, table: str = "cart_items"):
        self.client = client
        self.table = table

    def _rows(self):
        return self.client.table(self.table)

    async def list_for_owner(self, owner_id: str) -> list[dict[str, Any]]:
        return await execute(
            self._rows().select("*").eq("user_id", owner_id).order("created_at")
        )

    async def get_item(self, owner_id: str, product_id: str) -> dict[str, Any] | None:
        rows = await execute(
            self._rows()
            .select("*")
            .eq("user_id", owner_id)
            .eq("product_id", product_id)
            .limit(1)
        )
        return rows[0] if rows else None

    async def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        rows = await execute(self._rows().insert(row))
        return rows[0] if rows else row

    async def update_quantity(self, item_id: str, owner_id: str, quantity: int) -> None:
        await execute(
            self._rows()
            .update(
                {
                    "quantity": quantity,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            .eq("id", item_id)
            .eq("user_id", owner_id)
        )

    async def delete(self, item_id: str, owner_id: str) -> None:
        await execute(self._rows().delete().eq("id", item_id).eq("user_id", owner_id))

    async def clear(self, owner_id: str) -> None:
        await execute(self._rows().delete().eq("user_id", owner_id))

    # ----- Realtime -----

    async def subscribe(self, owner_id: str, callback: ChangeCallback):
        """
        Open a change feed for one owner's rows.

        Returns the channel handle to pass back to `unsubscribe`.
        """
        try:
            channel = self.client.channel(f"{self.table}:{owner_id}")
            channel.on_postgres_changes(
                "*",
                schema="public",
                table=self.table,
                filter=f"user_id=eq.{owner_id}",
                callback=callback,
            )
            await channel.subscribe()
        except Exception as exc:
            raise translate_error(exc) from exc
        return channel

    async def unsubscribe(self, channel) -> None:
        try:
            await self.client.remove_channel(channel)
        except Exception as exc:
            raise translate_error(exc) from exc
