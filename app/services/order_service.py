from typing import Dict, Iterable, List, Optional, Tuple
from datetime import datetime, timezone
from decimal import Decimal
import logging

from sqlalchemy import select, func, and_, case
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import OrderManagementError, NotFoundError, InvalidStateError, ConflictError
from app.core.identifiers import generate_order_id
from app.models.customer import Customer
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.models.product import Product
from app.schemas.order import OrderCreate, OrderItemCreate
from app.services import order_state_machine
from app.services.delivery_service import DeliveryService
from app.services.inventory_service import InventoryService, merge_quantities
from app.services.order_events import dispatcher, OrderShipped, OrderCancelled
from app.services.pricing_service import PricingService, PriceBreakdown, line_total, to_money

logger = logging.getLogger(__name__)


class OrderService:
    """
    Order lifecycle: creation, item edits, status changes and removal.

    Every public write runs in one transaction: it commits once on success
    and rolls back on any failure, so stock, customer aggregates and the
    delivery record change together with the order or not at all.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.inventory = InventoryService(db)
        self.pricing = PricingService()

    # ==================== READS ====================

    async def get_order(self, order_id: str) -> Optional[Order]:
        """Load an order with items and delivery, refreshed from the database."""
        stmt = (
            select(Order)
            .options(
                selectinload(Order.items),
                selectinload(Order.delivery),
            )
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def require_order(self, order_id: str, for_update: bool = False) -> Order:
        """
        Load an order for mutation. Raises NotFoundError when absent.

        Objects already in the session keep their pending changes.
        """
        stmt = select(Order).where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        order = (await self.db.execute(stmt)).scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def get_orders(
        self,
        status: Optional[OrderStatus] = None,
        customer_id: Optional[str] = None,
        payment_status: Optional[PaymentStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        """Get paginated orders with filters, newest first."""
        filters = []
        if status:
            filters.append(Order.status == status.value)
        if customer_id:
            filters.append(Order.customer_id == customer_id)
        if payment_status:
            filters.append(Order.payment_status == payment_status.value)
        if start_date:
            filters.append(Order.ordered_at >= start_date)
        if end_date:
            filters.append(Order.ordered_at <= end_date)

        stmt = select(Order).options(selectinload(Order.items))
        count_stmt = select(func.count(Order.id))
        if filters:
            stmt = stmt.where(and_(*filters))
            count_stmt = count_stmt.where(and_(*filters))

        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Order.ordered_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_customer_orders(
        self,
        customer_id: str,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        return await self.get_orders(customer_id=customer_id, skip=skip, limit=limit)

    async def get_product_customers(self, product_id: str) -> List[dict]:
        """Customers who ordered a product, with order count and total quantity."""
        stmt = (
            select(
                Customer.id,
                Customer.name,
                Customer.email,
                Customer.membership,
                func.count(func.distinct(Order.id)),
                func.sum(OrderItem.quantity),
            )
            .join(Order, Order.customer_id == Customer.id)
            .join(OrderItem, OrderItem.order_id == Order.id)
            .where(OrderItem.product_id == product_id)
            .group_by(Customer.id, Customer.name, Customer.email, Customer.membership)
            .order_by(func.sum(OrderItem.quantity).desc())
        )
        rows = (await self.db.execute(stmt)).all()
        return [
            {
                "customer_id": customer_id,
                "customer_name": name,
                "email": email,
                "membership": membership,
                "total_orders": total_orders,
                "total_quantity": int(total_quantity or 0),
            }
            for customer_id, name, email, membership, total_orders, total_quantity in rows
        ]

    # ==================== HELPERS ====================

    async def _get_customer(self, customer_id: str, for_update: bool = False) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.id == customer_id)
        if for_update:
            stmt = stmt.with_for_update()
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def _unique_order_id(self) -> str:
        for _ in range(5):
            order_id = generate_order_id()
            if await self.db.get(Order, order_id) is None:
                return order_id
        raise ConflictError("Could not allocate a unique order ID")

    def _build_items(
        self,
        lines: Iterable[OrderItemCreate],
        products: Dict[str, Product],
    ) -> Tuple[List[OrderItem], PriceBreakdown]:
        """Snapshot product name and price onto new order items and price them."""
        items = []
        for line in lines:
            product = products[line.product_id]
            items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                unit_price=to_money(product.price),
                total=line_total(product.price, line.quantity),
            ))
        breakdown = self.pricing.price((item.unit_price, item.quantity) for item in items)
        return items, breakdown

    @staticmethod
    def _apply_pricing(order: Order, breakdown: PriceBreakdown) -> None:
        order.subtotal = breakdown.subtotal
        order.tax = breakdown.tax
        order.shipping = breakdown.shipping
        order.total = breakdown.total

    async def reverse_order_effects(self, order: Order) -> None:
        """
        Undo what placing the order did: restore stock and take the order out
        of the customer's aggregates. Does not commit.
        """
        returned = merge_quantities((item.product_id, item.quantity) for item in order.items)
        products = await self.inventory.lock_products(returned)
        self.inventory.release(returned, products)

        customer = await self._get_customer(order.customer_id, for_update=True)
        if customer:
            customer.total_orders = max(0, customer.total_orders - 1)
            customer.total_spent = max(Decimal("0.00"), to_money(customer.total_spent - order.total))
        await self.db.flush()

    async def _commit(self, action: str, order_id: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error during {action} for order {order_id}: {e}")
            raise

    # ==================== WRITES ====================

    async def create_order(self, data: OrderCreate) -> Order:
        """
        Create an order.

        All lines are checked against current stock (quantities for the same
        product are summed) before any stock is decremented.
        """
        customer = await self._get_customer(data.customer_id, for_update=True)
        if not customer:
            raise NotFoundError("Customer not found")

        requested = merge_quantities((line.product_id, line.quantity) for line in data.items)

        try:
            products = await self.inventory.lock_products(requested)
            self.inventory.reserve(requested, products)
            items, breakdown = self._build_items(data.items, products)

            order = Order(
                id=await self._unique_order_id(),
                customer_id=customer.id,
                customer_name=customer.name,
                status=OrderStatus.PENDING.value,
                payment_method=data.payment_method.value,
                payment_status=PaymentStatus.PENDING.value,
                shipping_address=(
                    data.shipping_address.model_dump() if data.shipping_address else customer.address
                ),
                notes=data.notes,
                ordered_at=datetime.now(timezone.utc),
                items=items,
            )
            self._apply_pricing(order, breakdown)
            self.db.add(order)

            customer.total_orders += 1
            customer.total_spent = to_money(customer.total_spent + breakdown.total)
        except OrderManagementError as e:
            await self.db.rollback()
            logger.warning(f"Order rejected for customer {data.customer_id}: {e.message}")
            raise

        await self._commit("create", order.id)
        logger.info(
            f"Order {order.id} created for customer {customer.id}: "
            f"{len(items)} lines, total {breakdown.total}"
        )
        return await self.get_order(order.id)

    async def update_status(self, order_id: str, new_status: OrderStatus) -> Order:
        """
        Move an order to a new status, validated by the state machine.

        shipped publishes OrderShipped; cancelled publishes OrderCancelled.
        """
        order = await self.require_order(order_id, for_update=True)
        old_status = order.status
        order_state_machine.validate_transition(old_status, new_status.value)

        if old_status == new_status.value:
            return await self.get_order(order_id)

        now = datetime.now(timezone.utc)
        order.status = new_status.value

        if new_status == OrderStatus.SHIPPED:
            order.shipped_at = now
            await dispatcher.publish(self.db, OrderShipped(order_id=order.id))
        elif new_status == OrderStatus.DELIVERED:
            order.delivered_at = now
        elif new_status == OrderStatus.CANCELLED:
            await dispatcher.publish(
                self.db, OrderCancelled(order_id=order.id, previous_status=old_status)
            )

        await self._commit("status update", order.id)
        logger.info(f"Order {order.id} status: {old_status} -> {order.status}")
        return await self.get_order(order_id)

    async def update_items(self, order_id: str, lines: List[OrderItemCreate]) -> Order:
        """
        Replace a pending order's line items.

        Old quantities go back to stock, the new lines are validated against
        the restored stock, then decremented. The customer's total_spent moves
        by the difference in order total.
        """
        order = await self.require_order(order_id, for_update=True)
        if not order_state_machine.can_edit_items(order.status):
            raise InvalidStateError("Cannot modify items for non-pending orders")

        old_total = order.total
        returned = merge_quantities((item.product_id, item.quantity) for item in order.items)
        requested = merge_quantities((line.product_id, line.quantity) for line in lines)

        try:
            products = await self.inventory.lock_products(set(returned) | set(requested))
            self.inventory.release(returned, products)
            self.inventory.reserve(requested, products)

            items, breakdown = self._build_items(lines, products)
            order.items = items
            self._apply_pricing(order, breakdown)

            customer = await self._get_customer(order.customer_id, for_update=True)
            if customer:
                customer.total_spent = max(
                    Decimal("0.00"),
                    to_money(customer.total_spent + breakdown.total - old_total),
                )
        except OrderManagementError as e:
            await self.db.rollback()
            logger.warning(f"Item update rejected for order {order_id}: {e.message}")
            raise

        await self._commit("item update", order_id)
        logger.info(f"Order {order_id} items replaced: total {old_total} -> {breakdown.total}")
        return await self.get_order(order_id)

    async def update_payment(self, order_id: str, payment_status: PaymentStatus) -> Order:
        order = await self.require_order(order_id)
        old_status = order.payment_status
        order.payment_status = payment_status.value
        await self._commit("payment update", order_id)
        logger.info(f"Order {order_id} payment: {old_status} -> {order.payment_status}")
        return await self.get_order(order_id)

    async def delete_order(self, order_id: str) -> None:
        """
        Remove an order that hasn't shipped.

        Unless already cancelled, stock and customer aggregates are reversed
        first. The delivery record goes with the order.
        """
        order = await self.require_order(order_id, for_update=True)
        if not order_state_machine.can_delete(order.status):
            raise InvalidStateError("Cannot delete shipped or delivered orders")

        if order.status != OrderStatus.CANCELLED.value:
            await dispatcher.publish(
                self.db, OrderCancelled(order_id=order.id, previous_status=order.status)
            )
        else:
            await DeliveryService(self.db).remove_for_order(order.id)

        await self.db.delete(order)
        await self._commit("delete", order_id)
        logger.info(f"Order {order_id} deleted")

    # ==================== STATS ====================

    async def get_order_stats(self) -> dict:
        """Order counts by status and revenue over paid orders."""
        status_rows = (await self.db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        )).all()
        counts = {status: count for status, count in status_rows}

        paid = Order.payment_status == PaymentStatus.PAID.value
        active = Order.status != OrderStatus.CANCELLED.value
        revenue_row = (await self.db.execute(
            select(
                func.coalesce(func.sum(case((paid, Order.total), else_=0)), 0),
                # avg() skips the NULLs produced for cancelled orders
                func.avg(case((active, Order.total), else_=None)),
            )
        )).one()

        return {
            "total_orders": sum(counts.values()),
            "pending_orders": counts.get(OrderStatus.PENDING.value, 0),
            "confirmed_orders": counts.get(OrderStatus.CONFIRMED.value, 0),
            "processing_orders": counts.get(OrderStatus.PROCESSING.value, 0),
            "shipped_orders": counts.get(OrderStatus.SHIPPED.value, 0),
            "delivered_orders": counts.get(OrderStatus.DELIVERED.value, 0),
            "cancelled_orders": counts.get(OrderStatus.CANCELLED.value, 0),
            "total_revenue": float(revenue_row[0] or 0),
            "average_order_value": round(float(revenue_row[1] or 0), 2),
        }
