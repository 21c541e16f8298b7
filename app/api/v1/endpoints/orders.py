from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, status, Query, Depends

from app.api.deps import DB, CurrentUser, require_staff
from app.core.exceptions import NotFoundError
from app.models.order import OrderStatus, PaymentStatus
from app.schemas.common import DataResponse, ListResponse, MessageResponse, Pagination
from app.schemas.order import (
    OrderCreate,
    OrderItemsUpdate,
    OrderStatusUpdate,
    OrderPaymentUpdate,
    OrderResponse,
    OrderDetailResponse,
    OrderStats,
    ProductCustomer,
)
from app.services.order_service import OrderService


router = APIRouter(tags=["Orders"])


def _detail(order) -> DataResponse[OrderDetailResponse]:
    return DataResponse[OrderDetailResponse](data=OrderDetailResponse.model_validate(order))


@router.get(
    "",
    response_model=ListResponse[OrderResponse],
)
async def list_orders(
    db: DB,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    customer_id: Optional[str] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    """Get paginated list of orders, newest first."""
    orders, total = await OrderService(db).get_orders(
        status=status,
        customer_id=customer_id,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
        skip=(page - 1) * limit,
        limit=limit,
    )

    return ListResponse[OrderResponse](
        data=[OrderResponse.model_validate(o) for o in orders],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "",
    response_model=DataResponse[OrderDetailResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    data: OrderCreate,
    db: DB,
    current_user: CurrentUser,
):
    """
    Create an order.

    Stock is reserved for every line and the customer's order count and
    spend are updated in the same transaction.
    """
    order = await OrderService(db).create_order(data)
    return _detail(order)


@router.get(
    "/stats/summary",
    response_model=DataResponse[OrderStats],
)
async def get_order_stats(
    db: DB,
    current_user: CurrentUser,
):
    stats = await OrderService(db).get_order_stats()
    return DataResponse[OrderStats](data=OrderStats.model_validate(stats))


@router.get(
    "/customer/{customer_id}",
    response_model=ListResponse[OrderResponse],
)
async def list_customer_orders(
    customer_id: str,
    db: DB,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    orders, total = await OrderService(db).get_customer_orders(
        customer_id, skip=(page - 1) * limit, limit=limit
    )
    return ListResponse[OrderResponse](
        data=[OrderResponse.model_validate(o) for o in orders],
        pagination=Pagination.build(page, limit, total),
    )


@router.get(
    "/product/{product_id}/customers",
    response_model=DataResponse[List[ProductCustomer]],
    dependencies=[Depends(require_staff)]
)
async def list_product_customers(
    product_id: str,
    db: DB,
):
    """Customers who ordered the product, with quantities."""
    rows = await OrderService(db).get_product_customers(product_id)
    return DataResponse[List[ProductCustomer]](
        data=[ProductCustomer.model_validate(r) for r in rows]
    )


@router.get(
    "/{order_id}",
    response_model=DataResponse[OrderDetailResponse],
)
async def get_order(
    order_id: str,
    db: DB,
    current_user: CurrentUser,
):
    """Get an order with its items and delivery."""
    order = await OrderService(db).get_order(order_id)
    if not order:
        raise NotFoundError("Order not found")
    return _detail(order)


@router.put(
    "/{order_id}/status",
    response_model=DataResponse[OrderDetailResponse],
    dependencies=[Depends(require_staff)]
)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    db: DB,
):
    order = await OrderService(db).update_status(order_id, data.status)
    return _detail(order)


@router.put(
    "/{order_id}/items",
    response_model=DataResponse[OrderDetailResponse],
)
async def update_order_items(
    order_id: str,
    data: OrderItemsUpdate,
    db: DB,
    current_user: CurrentUser,
):
    """Replace the items of a pending order."""
    order = await OrderService(db).update_items(order_id, data.items)
    return _detail(order)


@router.put(
    "/{order_id}/payment",
    response_model=DataResponse[OrderDetailResponse],
)
async def update_order_payment(
    order_id: str,
    data: OrderPaymentUpdate,
    db: DB,
    current_user: CurrentUser,
):
    order = await OrderService(db).update_payment(order_id, data.payment_status)
    return _detail(order)


@router.delete(
    "/{order_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_staff)]
)
async def delete_order(
    order_id: str,
    db: DB,
):
    """Cancel and remove an order that hasn't shipped."""
    await OrderService(db).delete_order(order_id)
    return MessageResponse(message="Order deleted successfully")
