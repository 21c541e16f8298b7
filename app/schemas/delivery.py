from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.delivery import Carrier, DeliveryStatus, ShippingMethod
from app.schemas.base import (
    AddressSchema,
    BaseCreateSchema,
    BaseResponseSchema,
    BaseUpdateSchema,
    Money,
)


class DeliveryCreate(BaseCreateSchema):
    """
    Delivery creation schema.

    Omitted fields default from the order: address, recipient name, and an
    estimated delivery DEFAULT_DELIVERY_DAYS from now.
    """
    order_id: str = Field(..., max_length=20)
    carrier: Carrier = Carrier.LOCAL_DELIVERY
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    estimated_delivery: Optional[datetime] = None
    delivery_address: Optional[AddressSchema] = None
    recipient_name: Optional[str] = Field(None, max_length=200)
    signature_required: bool = False
    delivery_notes: Optional[str] = None


class DeliveryUpdate(BaseUpdateSchema):
    carrier: Optional[Carrier] = None
    shipping_method: Optional[ShippingMethod] = None
    estimated_delivery: Optional[datetime] = None
    delivery_address: Optional[AddressSchema] = None
    recipient_name: Optional[str] = Field(None, max_length=200)
    signature_required: Optional[bool] = None
    delivery_notes: Optional[str] = None


class DeliveryStatusUpdate(BaseModel):
    delivery_status: DeliveryStatus
    driver_notes: Optional[str] = None
    actual_delivery: Optional[datetime] = None


class DeliveryResponse(BaseResponseSchema):
    id: UUID
    order_id: str
    tracking_number: Optional[str] = None
    carrier: str
    shipping_method: str
    delivery_status: str
    delivered: bool = False
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    delivery_address: Optional[dict] = None
    recipient_name: Optional[str] = None
    signature_required: bool = False
    delivery_notes: Optional[str] = None
    driver_notes: Optional[str] = None
    date: datetime
    created_at: datetime
    updated_at: datetime


class DeliveryOrderSummary(BaseResponseSchema):
    """Order fields shown alongside a delivery."""
    id: str
    customer_id: str
    customer_name: str
    status: str
    total: Money
    item_count: int = 0


class DeliveryDetailResponse(DeliveryResponse):
    order: Optional[DeliveryOrderSummary] = None


# ==================== TRACKING ====================

class TimelineEntry(BaseModel):
    status: str
    message: str
    timestamp: Optional[datetime] = None
    completed: bool = True


class TrackingResponse(BaseModel):
    tracking_number: str
    order_id: str
    current_status: str
    delivered: bool
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    carrier: str
    shipping_method: str
    timeline: List[TimelineEntry]
    order_summary: Optional[DeliveryOrderSummary] = None


# ==================== STATS ====================

class DeliveryOverview(BaseModel):
    total_deliveries: int = 0
    delivered_count: int = 0
    pending_count: int = 0


class DeliveryStatusCount(BaseModel):
    status: str
    count: int


class CarrierBreakdown(BaseModel):
    carrier: str
    count: int
    delivered_count: int


class DeliveryStats(BaseModel):
    overview: DeliveryOverview
    status_breakdown: List[DeliveryStatusCount]
    carrier_breakdown: List[CarrierBreakdown]
