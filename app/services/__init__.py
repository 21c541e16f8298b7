# Services module
from app.services.pricing_service import PricingService
from app.services.inventory_service import InventoryService
from app.services.auth_service import AuthService
from app.services.customer_service import CustomerService
from app.services.product_service import ProductService
from app.services.delivery_service import DeliveryService
from app.services.order_service import OrderService

# Registers order event handlers with the dispatcher
from app.services import event_handlers  # noqa: F401

__all__ = [
    "PricingService",
    "InventoryService",
    "AuthService",
    "CustomerService",
    "ProductService",
    "DeliveryService",
    "OrderService",
]
