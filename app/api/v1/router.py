from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    customers,
    products,
    orders,
    deliveries,
)


api_router = APIRouter()

# Authentication
api_router.include_router(auth.router, prefix="/auth")

# CRM
api_router.include_router(customers.router, prefix="/customers")

# Product Catalog
api_router.include_router(products.router, prefix="/products")

# Order Management
api_router.include_router(orders.router, prefix="/orders")
api_router.include_router(deliveries.router, prefix="/deliveries")
