from typing import List, Optional, Tuple
from decimal import Decimal
import logging

from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFoundError, ConflictError
from app.core.identifiers import generate_customer_id
from app.models.customer import Customer, MembershipTier
from app.models.order import Order
from app.schemas.customer import CustomerCreate, CustomerUpdate

logger = logging.getLogger(__name__)


class CustomerService:
    """Customer records. Order aggregates are maintained by OrderService."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_customers(
        self,
        membership: Optional[MembershipTier] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Customer], int]:
        """Get paginated customers, newest first. search matches name or email."""
        filters = []
        if membership:
            filters.append(Customer.membership == membership.value)
        if search:
            search_filter = f"%{search}%"
            filters.append(
                or_(
                    Customer.name.ilike(search_filter),
                    Customer.email.ilike(search_filter),
                )
            )

        stmt = select(Customer)
        count_stmt = select(func.count(Customer.id))
        if filters:
            stmt = stmt.where(and_(*filters))
            count_stmt = count_stmt.where(and_(*filters))

        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Customer.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_customer(self, customer_id: str) -> Customer:
        customer = await self.db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    async def get_by_email(self, email: str) -> Optional[Customer]:
        stmt = select(Customer).where(func.lower(Customer.email) == email.lower())
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def _unique_customer_id(self) -> str:
        for _ in range(5):
            customer_id = generate_customer_id()
            if await self.db.get(Customer, customer_id) is None:
                return customer_id
        raise ConflictError("Could not allocate a unique customer ID")

    async def create_customer(self, data: CustomerCreate) -> Customer:
        if await self.get_by_email(data.email):
            raise ConflictError("Customer with this email already exists")

        customer = Customer(
            id=await self._unique_customer_id(),
            name=data.name,
            email=data.email.lower(),
            phone=data.phone,
            address=data.address.model_dump() if data.address else None,
            membership=data.membership.value,
            total_orders=0,
            total_spent=Decimal("0.00"),
        )
        self.db.add(customer)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Integrity error creating customer {data.email}: {e}")
            raise ConflictError("Customer with this email already exists")

        await self.db.refresh(customer)
        logger.info(f"Customer {customer.id} created ({customer.email})")
        return customer

    async def update_customer(self, customer_id: str, data: CustomerUpdate) -> Customer:
        customer = await self.get_customer(customer_id)

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("email"):
            email = update_data["email"].lower()
            existing = await self.get_by_email(email)
            if existing and existing.id != customer.id:
                raise ConflictError("Email already taken by another customer")
            update_data["email"] = email
        if update_data.get("membership"):
            update_data["membership"] = update_data["membership"].value

        for field, value in update_data.items():
            if value is None and field in ("name", "email", "membership"):
                continue
            setattr(customer, field, value)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Integrity error updating customer {customer_id}: {e}")
            raise ConflictError("Email already taken by another customer")

        await self.db.refresh(customer)
        return customer

    async def delete_customer(self, customer_id: str) -> None:
        """Hard delete. Refused while any order references the customer."""
        customer = await self.get_customer(customer_id)

        order_count = (await self.db.execute(
            select(func.count(Order.id)).where(Order.customer_id == customer_id)
        )).scalar() or 0
        if order_count:
            raise ConflictError(f"Cannot delete customer with {order_count} existing orders")

        await self.db.delete(customer)
        await self.db.commit()
        logger.info(f"Customer {customer_id} deleted")

    async def get_stats(self) -> dict:
        overview = (await self.db.execute(
            select(
                func.count(Customer.id),
                func.coalesce(func.sum(Customer.total_spent), 0),
                func.coalesce(func.sum(Customer.total_orders), 0),
                func.avg(Customer.total_orders),
                func.avg(Customer.total_spent),
            )
        )).one()

        membership_rows = (await self.db.execute(
            select(
                Customer.membership,
                func.count(Customer.id),
                func.coalesce(func.sum(Customer.total_spent), 0),
            )
            .group_by(Customer.membership)
            .order_by(Customer.membership)
        )).all()

        return {
            "overview": {
                "total": overview[0] or 0,
                "total_spent": Decimal(str(overview[1])),
                "total_orders": int(overview[2]),
                "avg_orders_per_customer": round(float(overview[3] or 0), 2),
                "avg_spent_per_customer": round(float(overview[4] or 0), 2),
            },
            "membership_breakdown": [
                {"membership": membership, "count": count, "total_spent": Decimal(str(spent))}
                for membership, count, spent in membership_rows
            ],
        }
