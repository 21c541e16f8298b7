from typing import List, Optional
from decimal import Decimal

from fastapi import APIRouter, status, Query, Depends

from app.api.deps import DB, require_staff
from app.schemas.common import DataResponse, ListResponse, MessageResponse, Pagination
from app.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductSort,
    ProductStats,
    StockUpdate,
)
from app.services.product_service import ProductService


router = APIRouter(tags=["Products"])


# ==================== PUBLIC CATALOG ====================

@router.get(
    "",
    response_model=ListResponse[ProductResponse],
)
async def list_products(
    db: DB,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = Query(None),
    brand: Optional[str] = Query(None),
    low_stock: bool = Query(False, description="Only products at or below their threshold"),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = Query(None),
    sort: Optional[ProductSort] = Query(None),
):
    """
    Get paginated list of active products.
    Public endpoint.
    """
    products, total = await ProductService(db).get_products(
        category=category,
        brand=brand,
        low_stock=low_stock,
        min_price=min_price,
        max_price=max_price,
        search=search,
        sort=sort,
        skip=(page - 1) * limit,
        limit=limit,
    )

    return ListResponse[ProductResponse](
        data=[ProductResponse.model_validate(p) for p in products],
        pagination=Pagination.build(page, limit, total),
    )


@router.get(
    "/categories",
    response_model=DataResponse[List[str]],
)
async def list_categories(db: DB):
    """Distinct categories of active products."""
    categories = await ProductService(db).get_categories()
    return DataResponse[List[str]](data=categories)


# ==================== ADMIN ====================

@router.get(
    "/admin/low-stock",
    response_model=DataResponse[List[ProductResponse]],
    dependencies=[Depends(require_staff)]
)
async def list_low_stock_products(db: DB):
    products = await ProductService(db).get_low_stock_products()
    return DataResponse[List[ProductResponse]](
        data=[ProductResponse.model_validate(p) for p in products]
    )


@router.get(
    "/admin/stats",
    response_model=DataResponse[ProductStats],
    dependencies=[Depends(require_staff)]
)
async def get_product_stats(db: DB):
    stats = await ProductService(db).get_stats()
    return DataResponse[ProductStats](data=ProductStats.model_validate(stats))


@router.post(
    "",
    response_model=DataResponse[ProductResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_staff)]
)
async def create_product(
    data: ProductCreate,
    db: DB,
):
    product = await ProductService(db).create_product(data)
    return DataResponse[ProductResponse](data=ProductResponse.model_validate(product))


@router.get(
    "/{product_id}",
    response_model=DataResponse[ProductResponse],
)
async def get_product(
    product_id: str,
    db: DB,
):
    """Get a product by ID. Public endpoint."""
    product = await ProductService(db).get_product(product_id)
    return DataResponse[ProductResponse](data=ProductResponse.model_validate(product))


@router.put(
    "/{product_id}",
    response_model=DataResponse[ProductResponse],
    dependencies=[Depends(require_staff)]
)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    db: DB,
):
    product = await ProductService(db).update_product(product_id, data)
    return DataResponse[ProductResponse](data=ProductResponse.model_validate(product))


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_staff)]
)
async def delete_product(
    product_id: str,
    db: DB,
):
    """Soft delete: the product is deactivated, not removed."""
    await ProductService(db).deactivate_product(product_id)
    return MessageResponse(message="Product deactivated successfully")


@router.put(
    "/{product_id}/stock",
    response_model=DataResponse[ProductResponse],
    dependencies=[Depends(require_staff)]
)
async def update_product_stock(
    product_id: str,
    data: StockUpdate,
    db: DB,
):
    """Set, add or subtract stock. subtract is clamped at zero."""
    product = await ProductService(db).update_stock(product_id, data)
    return DataResponse[ProductResponse](data=ProductResponse.model_validate(product))
