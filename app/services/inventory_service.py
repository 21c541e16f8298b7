from typing import Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, InsufficientStockError
from app.models.product import Product

logger = logging.getLogger(__name__)


def clamp_stock(current: int, delta: int) -> int:
    """Apply a signed delta to a stock level, never going below zero."""
    return max(0, current + delta)


def merge_quantities(lines: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    """Sum requested quantities per product, preserving first-seen order."""
    merged: Dict[str, int] = {}
    for product_id, quantity in lines:
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


class InventoryService:
    """
    Stock adjustments for products.

    Nothing here commits; callers own the transaction so a stock change lands
    together with the order write that caused it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def lock_products(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        """
        Load products by ID with a row lock (SELECT ... FOR UPDATE).

        Locks are taken in ID order to keep concurrent order writes from
        deadlocking each other. SQLite ignores FOR UPDATE.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}

        stmt = (
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return {product.id: product for product in result.scalars().all()}

    async def adjust(self, product_id: str, delta: int) -> Product:
        """Apply a signed delta to one product's stock, clamped at zero."""
        products = await self.lock_products([product_id])
        product = products.get(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")

        self.apply(product, delta)
        await self.db.flush()
        return product

    def apply(self, product: Product, delta: int) -> int:
        old_stock = product.stock
        product.stock = clamp_stock(old_stock, delta)
        logger.debug(f"Stock {product.id}: {old_stock} -> {product.stock} (delta {delta})")
        return product.stock

    def check_availability(
        self,
        requested: Dict[str, int],
        products: Dict[str, Product],
        require_active: bool = True,
    ) -> None:
        """
        Validate every requested quantity before anything is mutated.

        Raises:
            NotFoundError: product missing (or inactive when require_active)
            InsufficientStockError: stock below the requested quantity
        """
        for product_id, quantity in requested.items():
            product = products.get(product_id)
            if not product or (require_active and not product.is_active):
                raise NotFoundError(f"Product {product_id} not found")
            if product.stock < quantity:
                raise InsufficientStockError(product.name, product.stock, quantity)

    def reserve(self, requested: Dict[str, int], products: Dict[str, Product]) -> None:
        """Check all lines, then decrement stock for each one."""
        self.check_availability(requested, products)
        for product_id, quantity in requested.items():
            self.apply(products[product_id], -quantity)

    def release(self, returned: Dict[str, int], products: Dict[str, Product]) -> List[str]:
        """
        Add quantities back to stock.

        Products that no longer exist are skipped and their IDs returned.
        """
        missing = []
        for product_id, quantity in returned.items():
            product = products.get(product_id)
            if product is None:
                missing.append(product_id)
                continue
            self.apply(product, quantity)
        if missing:
            logger.warning(f"Stock not restored for missing products: {', '.join(missing)}")
        return missing

    async def get_low_stock_products(self, limit: Optional[int] = None) -> List[Product]:
        """Active products at or below their low-stock threshold, lowest stock first."""
        stmt = (
            select(Product)
            .where(Product.is_active == True)  # noqa: E712
            .where(Product.stock <= Product.low_stock_threshold)
            .order_by(Product.stock.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
