"""Delivery model for shipment tracking."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import JSONType, UUIDType

if TYPE_CHECKING:
    from app.models.order import Order


class DeliveryStatus(str, Enum):
    """Delivery status enumeration."""
    PENDING = "pending"                    # Awaiting carrier pickup
    PICKED_UP = "picked_up"                # Picked up by carrier
    IN_TRANSIT = "in_transit"              # In transit
    OUT_FOR_DELIVERY = "out_for_delivery"  # Out for final delivery
    DELIVERED = "delivered"                # Successfully delivered
    FAILED = "failed"                      # Delivery attempt failed
    RETURNED = "returned"                  # Returned to sender


class Carrier(str, Enum):
    """Shipping carrier."""
    UPS = "ups"
    FEDEX = "fedex"
    DHL = "dhl"
    USPS = "usps"
    LOCAL_DELIVERY = "local_delivery"


class ShippingMethod(str, Enum):
    """Shipping method."""
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    SAME_DAY = "same_day"


class Delivery(Base):
    """
    Delivery record, one per order.
    Kept separate from the order so carrier updates don't touch order rows.
    """
    __tablename__ = "deliveries"
    __table_args__ = (
        Index('ix_delivery_delivered_date', 'delivered', 'date'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    order_id: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True
    )

    tracking_number: Mapped[Optional[str]] = mapped_column(
        String(30),
        unique=True,
        nullable=True,
        index=True
    )

    carrier: Mapped[str] = mapped_column(
        String(30),
        default=Carrier.LOCAL_DELIVERY.value,
        nullable=False,
        comment="ups, fedex, dhl, usps, local_delivery"
    )
    shipping_method: Mapped[str] = mapped_column(
        String(20),
        default=ShippingMethod.STANDARD.value,
        nullable=False,
        comment="standard, express, overnight, same_day"
    )

    delivery_status: Mapped[str] = mapped_column(
        String(30),
        default=DeliveryStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="pending, picked_up, in_transit, out_for_delivery, delivered, failed, returned"
    )
    delivered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    estimated_delivery: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_delivery: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    delivery_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    recipient_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    signature_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    delivery_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    driver_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="When the delivery record was opened"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    order: Mapped["Order"] = relationship("Order", viewonly=True)

    def __repr__(self) -> str:
        return f"<Delivery(order_id='{self.order_id}', status='{self.delivery_status}')>"
