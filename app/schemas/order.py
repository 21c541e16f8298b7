from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.order import OrderStatus, PaymentMethod, PaymentStatus
from app.schemas.base import AddressSchema, BaseCreateSchema, BaseResponseSchema, Money
from app.schemas.delivery import DeliveryResponse


# ==================== ORDER ITEM SCHEMAS ====================

class OrderItemCreate(BaseModel):
    """A requested line. Name and price are snapshotted from the product."""
    product_id: str = Field(..., max_length=20)
    quantity: int = Field(..., ge=1)


class OrderItemResponse(BaseResponseSchema):
    id: int
    product_id: str
    product_name: str
    quantity: int
    unit_price: Money
    total: Money


# ==================== ORDER SCHEMAS ====================

class OrderCreate(BaseCreateSchema):
    """
    Order creation schema.

    shipping_address defaults to the customer's address when omitted.
    """
    customer_id: str = Field(..., max_length=20)
    items: List[OrderItemCreate] = Field(..., min_length=1)
    shipping_address: Optional[AddressSchema] = None
    payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD
    notes: Optional[str] = None


class OrderItemsUpdate(BaseModel):
    items: List[OrderItemCreate] = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderPaymentUpdate(BaseModel):
    payment_status: PaymentStatus


class OrderResponse(BaseResponseSchema):
    id: str
    customer_id: str
    customer_name: str
    status: str
    items: List[OrderItemResponse] = []
    item_count: int = 0
    subtotal: Money
    tax: Money
    shipping: Money
    total: Money
    payment_method: str
    payment_status: str
    shipping_address: Optional[dict] = None
    notes: Optional[str] = None
    ordered_at: datetime
    created_at: datetime
    updated_at: datetime
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class OrderDetailResponse(OrderResponse):
    """Single order read, including its delivery if one exists."""
    delivery: Optional[DeliveryResponse] = None


# ==================== PROJECTIONS & STATS ====================

class ProductCustomer(BaseModel):
    """A customer who ordered a given product."""
    customer_id: str
    customer_name: str
    email: str
    membership: str
    total_orders: int
    total_quantity: int


class OrderStats(BaseModel):
    total_orders: int = 0
    pending_orders: int = 0
    confirmed_orders: int = 0
    processing_orders: int = 0
    shipped_orders: int = 0
    delivered_orders: int = 0
    cancelled_orders: int = 0
    total_revenue: float = 0.0
    average_order_value: float = 0.0
