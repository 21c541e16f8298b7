from typing import List, Optional, Tuple
from datetime import datetime, timedelta, timezone
from enum import Enum
import logging

from sqlalchemy import select, func, and_, case
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import NotFoundError, ConflictError
from app.core.identifiers import generate_tracking_number
from app.models.delivery import Delivery, DeliveryStatus, Carrier, ShippingMethod
from app.models.order import Order
from app.schemas.delivery import DeliveryCreate, DeliveryUpdate, DeliveryStatusUpdate
from app.services.order_events import dispatcher, DeliveryCompleted

logger = logging.getLogger(__name__)


# Milestones in display order; failed/returned are off this path
TIMELINE_MILESTONES: List[Tuple[str, str]] = [
    (DeliveryStatus.PENDING.value, "Order received and being prepared"),
    (DeliveryStatus.PICKED_UP.value, "Package picked up by carrier"),
    (DeliveryStatus.IN_TRANSIT.value, "Package is in transit"),
    (DeliveryStatus.OUT_FOR_DELIVERY.value, "Out for delivery"),
    (DeliveryStatus.DELIVERED.value, "Package delivered successfully"),
]
_MILESTONE_RANK = {status: rank for rank, (status, _) in enumerate(TIMELINE_MILESTONES)}

# Non-nullable columns an update may not clear
_REQUIRED_FIELDS = {"carrier", "shipping_method", "signature_required"}


def build_timeline(
    delivery_status: str,
    opened_at: Optional[datetime] = None,
    updated_at: Optional[datetime] = None,
    actual_delivery: Optional[datetime] = None,
) -> List[dict]:
    """
    Derive a tracking timeline from the current delivery status.

    pending is always present. Each later milestone is included (completed)
    when the current status is at or beyond it; failed and returned
    deliveries only show pending.
    """
    reached = _MILESTONE_RANK.get(delivery_status, 0)
    timeline = []
    for rank, (status, message) in enumerate(TIMELINE_MILESTONES):
        if rank > reached:
            break
        if rank == 0:
            timestamp = opened_at
        elif status == DeliveryStatus.DELIVERED.value:
            timestamp = actual_delivery
        else:
            timestamp = updated_at
        timeline.append({
            "status": status,
            "message": message,
            "timestamp": timestamp,
            "completed": True,
        })
    return timeline


def _order_summary(order: Optional[Order]) -> Optional[dict]:
    if order is None:
        return None
    return {
        "id": order.id,
        "customer_id": order.customer_id,
        "customer_name": order.customer_name,
        "status": order.status,
        "total": order.total,
        "item_count": order.item_count,
    }


class DeliveryService:
    """Service for delivery records and shipment tracking."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== LOOKUPS ====================

    async def get_by_order_id(self, order_id: str, with_order: bool = False) -> Optional[Delivery]:
        stmt = select(Delivery).where(Delivery.order_id == order_id)
        if with_order:
            stmt = stmt.options(selectinload(Delivery.order))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_tracking_number(self, tracking_number: str, with_order: bool = False) -> Optional[Delivery]:
        stmt = select(Delivery).where(Delivery.tracking_number == tracking_number)
        if with_order:
            stmt = stmt.options(selectinload(Delivery.order))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_identifier(self, identifier: str) -> Delivery:
        """Look up by order ID first, then by tracking number."""
        delivery = await self.get_by_order_id(identifier, with_order=True)
        if delivery is None:
            delivery = await self.get_by_tracking_number(identifier, with_order=True)
        if delivery is None:
            raise NotFoundError("Delivery record not found")
        return delivery

    async def _require_by_order_id(self, order_id: str) -> Delivery:
        delivery = await self.get_by_order_id(order_id)
        if delivery is None:
            raise NotFoundError("Delivery record not found")
        return delivery

    async def get_deliveries(
        self,
        status: Optional[DeliveryStatus] = None,
        carrier: Optional[Carrier] = None,
        delivered: Optional[bool] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Delivery], int]:
        """Get paginated deliveries with filters, newest first."""
        filters = []
        if status:
            filters.append(Delivery.delivery_status == status.value)
        if carrier:
            filters.append(Delivery.carrier == carrier.value)
        if delivered is not None:
            filters.append(Delivery.delivered == delivered)
        if start_date:
            filters.append(Delivery.date >= start_date)
        if end_date:
            filters.append(Delivery.date <= end_date)

        stmt = select(Delivery).options(selectinload(Delivery.order))
        count_stmt = select(func.count(Delivery.id))
        if filters:
            stmt = stmt.where(and_(*filters))
            count_stmt = count_stmt.where(and_(*filters))

        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Delivery.date.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    # ==================== WRITES ====================

    async def _unique_tracking_number(self) -> str:
        for _ in range(5):
            tracking_number = generate_tracking_number()
            if await self.get_by_tracking_number(tracking_number) is None:
                return tracking_number
        raise ConflictError("Could not allocate a unique tracking number")

    async def build_for_order(
        self,
        order: Order,
        delivery_status: DeliveryStatus = DeliveryStatus.PENDING,
        carrier: Carrier = Carrier.LOCAL_DELIVERY,
        shipping_method: ShippingMethod = ShippingMethod.STANDARD,
        estimated_delivery: Optional[datetime] = None,
        delivery_address: Optional[dict] = None,
        recipient_name: Optional[str] = None,
        signature_required: bool = False,
        delivery_notes: Optional[str] = None,
    ) -> Delivery:
        """
        Add a delivery for an order to the session without committing.

        Address and recipient default to the order's shipping address and
        customer name.
        """
        now = datetime.now(timezone.utc)
        delivery = Delivery(
            order_id=order.id,
            tracking_number=await self._unique_tracking_number(),
            carrier=carrier.value,
            shipping_method=shipping_method.value,
            delivery_status=delivery_status.value,
            delivered=False,
            estimated_delivery=estimated_delivery or now + timedelta(days=settings.DEFAULT_DELIVERY_DAYS),
            delivery_address=delivery_address or order.shipping_address,
            recipient_name=recipient_name or order.customer_name,
            signature_required=signature_required,
            delivery_notes=delivery_notes,
            date=now,
        )
        self.db.add(delivery)
        await self.db.flush()
        logger.info(f"Delivery {delivery.tracking_number} opened for order {order.id}")
        return delivery

    async def create(self, data: DeliveryCreate) -> Delivery:
        order = (await self.db.execute(select(Order).where(Order.id == data.order_id))).scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")

        if await self.get_by_order_id(order.id) is not None:
            raise ConflictError("Delivery record already exists for this order")

        delivery = await self.build_for_order(
            order,
            carrier=data.carrier,
            shipping_method=data.shipping_method,
            estimated_delivery=data.estimated_delivery,
            delivery_address=data.delivery_address.model_dump() if data.delivery_address else None,
            recipient_name=data.recipient_name,
            signature_required=data.signature_required,
            delivery_notes=data.delivery_notes,
        )
        await self.db.commit()
        return delivery

    async def update_status(self, order_id: str, data: DeliveryStatusUpdate) -> Delivery:
        """
        Set the delivery status.

        Reaching delivered marks the record delivered, stamps actual_delivery
        and publishes DeliveryCompleted so the order follows.
        """
        delivery = await self._require_by_order_id(order_id)

        old_status = delivery.delivery_status
        delivery.delivery_status = data.delivery_status.value
        if data.driver_notes:
            delivery.driver_notes = data.driver_notes

        if data.delivery_status == DeliveryStatus.DELIVERED:
            delivery.delivered = True
            delivery.actual_delivery = data.actual_delivery or datetime.now(timezone.utc)
            await dispatcher.publish(
                self.db,
                DeliveryCompleted(order_id=delivery.order_id, actual_delivery=delivery.actual_delivery),
            )
        else:
            delivery.delivered = False

        await self.db.commit()
        await self.db.refresh(delivery)
        logger.info(f"Delivery for order {order_id}: {old_status} -> {delivery.delivery_status}")
        return delivery

    async def update(self, order_id: str, data: DeliveryUpdate) -> Delivery:
        delivery = await self._require_by_order_id(order_id)

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            if isinstance(value, Enum):
                value = value.value
            setattr(delivery, field, value)

        await self.db.commit()
        await self.db.refresh(delivery)
        return delivery

    async def remove_for_order(self, order_id: str) -> bool:
        """Delete an order's delivery without committing. Returns True if one existed."""
        delivery = await self.get_by_order_id(order_id)
        if delivery is None:
            return False
        await self.db.delete(delivery)
        await self.db.flush()
        logger.info(f"Delivery {delivery.tracking_number} removed for order {order_id}")
        return True

    async def delete(self, order_id: str) -> None:
        await self._require_by_order_id(order_id)
        await self.remove_for_order(order_id)
        await self.db.commit()

    # ==================== TRACKING ====================

    async def track(self, tracking_number: str) -> dict:
        delivery = await self.get_by_tracking_number(tracking_number, with_order=True)
        if delivery is None:
            raise NotFoundError("Invalid tracking number")

        return {
            "tracking_number": delivery.tracking_number,
            "order_id": delivery.order_id,
            "current_status": delivery.delivery_status,
            "delivered": delivery.delivered,
            "estimated_delivery": delivery.estimated_delivery,
            "actual_delivery": delivery.actual_delivery,
            "carrier": delivery.carrier,
            "shipping_method": delivery.shipping_method,
            "timeline": build_timeline(
                delivery.delivery_status,
                opened_at=delivery.date,
                updated_at=delivery.updated_at,
                actual_delivery=delivery.actual_delivery,
            ),
            "order_summary": _order_summary(delivery.order),
        }

    # ==================== STATS ====================

    async def get_stats(self) -> dict:
        delivered_flag = case((Delivery.delivered == True, 1), else_=0)  # noqa: E712
        not_delivered = case((Delivery.delivery_status != DeliveryStatus.DELIVERED.value, 1), else_=0)

        overview_row = (await self.db.execute(
            select(
                func.count(Delivery.id),
                func.coalesce(func.sum(delivered_flag), 0),
                func.coalesce(func.sum(not_delivered), 0),
            )
        )).one()

        status_rows = (await self.db.execute(
            select(Delivery.delivery_status, func.count(Delivery.id))
            .group_by(Delivery.delivery_status)
            .order_by(Delivery.delivery_status)
        )).all()

        carrier_rows = (await self.db.execute(
            select(
                Delivery.carrier,
                func.count(Delivery.id),
                func.coalesce(func.sum(delivered_flag), 0),
            )
            .group_by(Delivery.carrier)
            .order_by(Delivery.carrier)
        )).all()

        return {
            "overview": {
                "total_deliveries": overview_row[0] or 0,
                "delivered_count": int(overview_row[1]),
                "pending_count": int(overview_row[2]),
            },
            "status_breakdown": [
                {"status": status, "count": count} for status, count in status_rows
            ],
            "carrier_breakdown": [
                {"carrier": carrier, "count": count, "delivered_count": int(delivered)}
                for carrier, count, delivered in carrier_rows
            ],
        }
