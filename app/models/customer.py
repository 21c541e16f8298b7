from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Integer, DateTime, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import JSONType

if TYPE_CHECKING:
    from app.models.order import Order


class MembershipTier(str, Enum):
    """Customer membership tier."""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class Customer(Base):
    """
    Customer model for CRM and orders.
    total_orders / total_spent are running aggregates over non-cancelled orders,
    maintained by the order lifecycle rather than recomputed.
    """
    __tablename__ = "customers"
    __table_args__ = (
        Index('ix_customer_membership', 'membership'),
    )

    id: Mapped[str] = mapped_column(String(20), primary_key=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    # street, city, state, zip_code, country
    address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    membership: Mapped[str] = mapped_column(
        String(20),
        default=MembershipTier.BRONZE.value,
        nullable=False,
        comment="bronze, silver, gold, platinum"
    )

    # Aggregates
    total_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_spent: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0.00"),
        nullable=False
    )

    # Timestamps
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
    orders: Mapped[List["Order"]] = relationship("Order", back_populates="customer")

    def __repr__(self) -> str:
        return f"<Customer(id='{self.id}', email='{self.email}')>"
