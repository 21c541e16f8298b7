from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.config import settings
from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema, Money


class ProductSort(str, Enum):
    """Sort options for product listing. Default is newest first."""
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    STOCK_ASC = "stock_asc"
    STOCK_DESC = "stock_desc"


class StockOperation(str, Enum):
    SET = "set"
    ADD = "add"
    SUBTRACT = "subtract"


class ProductCreate(BaseCreateSchema):
    """Product creation schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = Field(None, max_length=50)
    category: str = Field(..., min_length=1, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    image: Optional[str] = Field(None, max_length=500)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    low_stock_threshold: int = Field(default_factory=lambda: settings.DEFAULT_LOW_STOCK_THRESHOLD, ge=0)


class ProductUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = Field(None, max_length=50)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    image: Optional[str] = Field(None, max_length=500)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class StockUpdate(BaseModel):
    """Stock change request. subtract is clamped at zero."""
    stock: int = Field(..., ge=0)
    operation: StockOperation = StockOperation.SET


class ProductResponse(BaseResponseSchema):
    id: str
    name: str
    description: Optional[str] = None
    sku: Optional[str] = None
    category: str
    brand: Optional[str] = None
    image: Optional[str] = None
    price: Money
    stock: int
    low_stock_threshold: int
    is_low_stock: bool = False
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


# ==================== STATS ====================

class ProductOverview(BaseModel):
    total_products: int = 0
    total_stock: int = 0
    avg_price: float = 0.0
    low_stock_count: int = 0


class CategoryBreakdown(BaseModel):
    category: str
    count: int
    total_stock: int
    avg_price: float


class ProductStats(BaseModel):
    overview: ProductOverview
    category_breakdown: List[CategoryBreakdown]
