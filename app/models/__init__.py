# Import all models so they register with Base.metadata
from app.models.user import User, UserRole
from app.models.customer import Customer, MembershipTier
from app.models.product import Product
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus, PaymentMethod
from app.models.delivery import Delivery, DeliveryStatus, Carrier, ShippingMethod

__all__ = [
    "User",
    "UserRole",
    "Customer",
    "MembershipTier",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "Delivery",
    "DeliveryStatus",
    "Carrier",
    "ShippingMethod",
]
