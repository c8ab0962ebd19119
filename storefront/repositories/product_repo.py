# storefront/repositories/product_repo.py
from supabase import AsyncClient

from storefront.repositories.cart_repo import execute
from storefront.schemas.product import ProductRead


class ProductRepository:
    """
    Read-only access to the product catalog.

    - The storefront does not own products; admin CRUD lives elsewhere.
    """

    def __init__(self, client: AsyncClient, table: str = "products"):
        self.client = client
        self.table = table

    async def get_by_id(self, product_id: str) -> ProductRead | None:
        rows = await execute(
            self.client.table(self.table).select("*").eq("id", product_id).limit(1)
        )
        return ProductRead.model_validate(rows[0]) if rows else None

    async def list_by_ids(self, product_ids: list[str]) -> list[ProductRead]:
        if not product_ids:
            return []
        rows = await execute(
            self.client.table(self.table).select("*").in_("id", product_ids)
        )
        return [ProductRead.model_validate(r) for r in rows]
