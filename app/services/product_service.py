from typing import List, Optional, Tuple
from decimal import Decimal
import logging

from sqlalchemy import select, func, and_, or_, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFoundError, ConflictError
from app.core.identifiers import generate_product_id
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductUpdate, ProductSort, StockOperation, StockUpdate
from app.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)


SORT_COLUMNS = {
    ProductSort.PRICE_ASC: Product.price.asc(),
    ProductSort.PRICE_DESC: Product.price.desc(),
    ProductSort.NAME_ASC: Product.name.asc(),
    ProductSort.NAME_DESC: Product.name.desc(),
    ProductSort.STOCK_ASC: Product.stock.asc(),
    ProductSort.STOCK_DESC: Product.stock.desc(),
}


class ProductService:
    """Product catalog. Listing only shows active products."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.inventory = InventoryService(db)

    async def get_products(
        self,
        category: Optional[str] = None,
        brand: Optional[str] = None,
        low_stock: bool = False,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        search: Optional[str] = None,
        sort: Optional[ProductSort] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Product], int]:
        """Get paginated active products with filters."""
        filters = [Product.is_active == True]  # noqa: E712

        if category:
            filters.append(Product.category == category)
        if brand:
            filters.append(Product.brand == brand)
        if low_stock:
            filters.append(Product.stock <= Product.low_stock_threshold)
        if min_price is not None:
            filters.append(Product.price >= min_price)
        if max_price is not None:
            filters.append(Product.price <= max_price)
        if search:
            search_filter = f"%{search}%"
            filters.append(
                or_(
                    Product.name.ilike(search_filter),
                    Product.description.ilike(search_filter),
                    Product.brand.ilike(search_filter),
                    Product.category.ilike(search_filter),
                )
            )

        count_stmt = select(func.count(Product.id)).where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        order_by = SORT_COLUMNS.get(sort, Product.created_at.desc())
        stmt = (
            select(Product)
            .where(and_(*filters))
            .order_by(order_by, Product.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_categories(self) -> List[str]:
        stmt = (
            select(Product.category)
            .where(Product.is_active == True)  # noqa: E712
            .distinct()
            .order_by(Product.category)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def get_product(self, product_id: str) -> Product:
        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    async def _unique_product_id(self) -> str:
        for _ in range(5):
            product_id = generate_product_id()
            if await self.db.get(Product, product_id) is None:
                return product_id
        raise ConflictError("Could not allocate a unique product ID")

    async def _commit_or_conflict(self, sku: Optional[str]) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Integrity error saving product (sku={sku}): {e}")
            raise ConflictError(f"Product with SKU {sku} already exists")

    async def create_product(self, data: ProductCreate) -> Product:
        if data.sku:
            existing = (await self.db.execute(
                select(Product).where(Product.sku == data.sku)
            )).scalar_one_or_none()
            if existing:
                raise ConflictError(f"Product with SKU {data.sku} already exists")

        product = Product(
            id=await self._unique_product_id(),
            is_active=True,
            **data.model_dump(),
        )
        self.db.add(product)
        await self._commit_or_conflict(data.sku)
        await self.db.refresh(product)
        logger.info(f"Product {product.id} created: {product.name}")
        return product

    async def update_product(self, product_id: str, data: ProductUpdate) -> Product:
        """Partial update. Historical order items keep their snapshot."""
        product = await self.get_product(product_id)

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is None and field in ("name", "category", "price", "stock", "low_stock_threshold", "is_active"):
                continue
            setattr(product, field, value)

        await self._commit_or_conflict(update_data.get("sku"))
        await self.db.refresh(product)
        return product

    async def deactivate_product(self, product_id: str) -> None:
        """Soft delete: products are never removed."""
        product = await self.get_product(product_id)
        product.is_active = False
        await self.db.commit()
        logger.info(f"Product {product_id} deactivated")

    async def update_stock(self, product_id: str, data: StockUpdate) -> Product:
        """Set, add to or subtract from stock. subtract never goes below zero."""
        if data.operation == StockOperation.SET:
            product = await self.get_product(product_id)
            product.stock = data.stock
        elif data.operation == StockOperation.ADD:
            product = await self.inventory.adjust(product_id, data.stock)
        else:
            product = await self.inventory.adjust(product_id, -data.stock)

        await self.db.commit()
        await self.db.refresh(product)
        logger.info(f"Product {product_id} stock {data.operation.value} {data.stock} -> {product.stock}")
        return product

    async def get_low_stock_products(self) -> List[Product]:
        return await self.inventory.get_low_stock_products()

    async def get_stats(self) -> dict:
        """Overview and per-category breakdown over active products."""
        active = Product.is_active == True  # noqa: E712
        low_stock = case((Product.stock <= Product.low_stock_threshold, 1), else_=0)

        overview = (await self.db.execute(
            select(
                func.count(Product.id),
                func.coalesce(func.sum(Product.stock), 0),
                func.avg(Product.price),
                func.coalesce(func.sum(low_stock), 0),
            ).where(active)
        )).one()

        category_rows = (await self.db.execute(
            select(
                Product.category,
                func.count(Product.id),
                func.coalesce(func.sum(Product.stock), 0),
                func.avg(Product.price),
            )
            .where(active)
            .group_by(Product.category)
            .order_by(func.count(Product.id).desc(), Product.category)
        )).all()

        return {
            "overview": {
                "total_products": overview[0] or 0,
                "total_stock": int(overview[1]),
                "avg_price": round(float(overview[2] or 0), 2),
                "low_stock_count": int(overview[3]),
            },
            "category_breakdown": [
                {
                    "category": category,
                    "count": count,
                    "total_stock": int(stock),
                    "avg_price": round(float(avg_price or 0), 2),
                }
                for category, count, stock, avg_price in category_rows
            ],
        }
