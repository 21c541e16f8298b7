from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.customer import MembershipTier
from app.schemas.base import (
    AddressSchema,
    BaseCreateSchema,
    BaseResponseSchema,
    BaseUpdateSchema,
    Money,
)


# ==================== CUSTOMER SCHEMAS ====================

class CustomerCreate(BaseCreateSchema):
    """Customer creation schema."""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[AddressSchema] = None
    membership: MembershipTier = MembershipTier.BRONZE


class CustomerUpdate(BaseUpdateSchema):
    """Customer update schema. Aggregates are not client-writable."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[AddressSchema] = None
    membership: Optional[MembershipTier] = None


class CustomerResponse(BaseResponseSchema):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[dict] = None
    membership: str
    total_orders: int = 0
    total_spent: Money
    created_at: datetime
    updated_at: datetime


class CustomerBrief(BaseResponseSchema):
    """Customer summary embedded in order responses."""
    id: str
    name: str
    email: str
    membership: str


# ==================== STATS ====================

class CustomerOverview(BaseModel):
    total: int = 0
    total_spent: Money = Decimal("0.00")
    total_orders: int = 0
    avg_orders_per_customer: float = 0.0
    avg_spent_per_customer: float = 0.0


class MembershipBreakdown(BaseModel):
    membership: str
    count: int
    total_spent: Money


class CustomerStats(BaseModel):
    overview: CustomerOverview
    membership_breakdown: List[MembershipBreakdown]
