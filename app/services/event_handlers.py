"""
Handlers for order lifecycle events.

Imported by app.services so the dispatcher is wired before any service runs.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.delivery import DeliveryStatus
from app.models.order import OrderStatus
from app.services import order_state_machine
from app.services.delivery_service import DeliveryService
from app.services.order_events import dispatcher, OrderShipped, OrderCancelled, DeliveryCompleted
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)


@dispatcher.subscribe(OrderShipped)
async def open_delivery_for_shipped_order(db: AsyncSession, event: OrderShipped) -> None:
    """Create an in-transit delivery if the order doesn't have one yet."""
    deliveries = DeliveryService(db)
    if await deliveries.get_by_order_id(event.order_id) is not None:
        return

    order = await OrderService(db).require_order(event.order_id)
    await deliveries.build_for_order(order, delivery_status=DeliveryStatus.IN_TRANSIT)


@dispatcher.subscribe(OrderCancelled)
async def reverse_cancelled_order(db: AsyncSession, event: OrderCancelled) -> None:
    """Restore stock and customer aggregates, and drop the delivery."""
    orders = OrderService(db)
    order = await orders.require_order(event.order_id)
    await orders.reverse_order_effects(order)
    await DeliveryService(db).remove_for_order(order.id)
    order.cancelled_at = event.occurred_at
    logger.info(f"Order {order.id} cancelled from '{event.previous_status}'; stock and aggregates restored")


@dispatcher.subscribe(DeliveryCompleted)
async def mark_order_delivered(db: AsyncSession, event: DeliveryCompleted) -> None:
    order = await OrderService(db).require_order(event.order_id)
    if not order_state_machine.can_force_delivered(order.status):
        logger.warning(f"Delivery completed for cancelled order {order.id}; order status left as is")
        return

    order.status = OrderStatus.DELIVERED.value
    order.delivered_at = event.actual_delivery or event.occurred_at
