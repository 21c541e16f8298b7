from typing import Optional

from fastapi import APIRouter, status, Query, Depends

from app.api.deps import DB, CurrentUser, require_staff
from app.models.customer import MembershipTier
from app.schemas.common import DataResponse, ListResponse, MessageResponse, Pagination
from app.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
    CustomerStats,
)
from app.services.customer_service import CustomerService


router = APIRouter(tags=["Customers"])


@router.get(
    "",
    response_model=ListResponse[CustomerResponse],
)
async def list_customers(
    db: DB,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    membership: Optional[MembershipTier] = Query(None),
    search: Optional[str] = Query(None, description="Search by name or email"),
):
    """Get paginated list of customers."""
    service = CustomerService(db)
    customers, total = await service.get_customers(
        membership=membership,
        search=search,
        skip=(page - 1) * limit,
        limit=limit,
    )

    return ListResponse[CustomerResponse](
        data=[CustomerResponse.model_validate(c) for c in customers],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "",
    response_model=DataResponse[CustomerResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_staff)]
)
async def create_customer(
    data: CustomerCreate,
    db: DB,
):
    customer = await CustomerService(db).create_customer(data)
    return DataResponse[CustomerResponse](data=CustomerResponse.model_validate(customer))


@router.get(
    "/stats",
    response_model=DataResponse[CustomerStats],
    dependencies=[Depends(require_staff)]
)
async def get_customer_stats(db: DB):
    """Totals, averages and membership breakdown."""
    stats = await CustomerService(db).get_stats()
    return DataResponse[CustomerStats](data=CustomerStats.model_validate(stats))


@router.get(
    "/{customer_id}",
    response_model=DataResponse[CustomerResponse],
)
async def get_customer(
    customer_id: str,
    db: DB,
    current_user: CurrentUser,
):
    customer = await CustomerService(db).get_customer(customer_id)
    return DataResponse[CustomerResponse](data=CustomerResponse.model_validate(customer))


@router.put(
    "/{customer_id}",
    response_model=DataResponse[CustomerResponse],
    dependencies=[Depends(require_staff)]
)
async def update_customer(
    customer_id: str,
    data: CustomerUpdate,
    db: DB,
):
    customer = await CustomerService(db).update_customer(customer_id, data)
    return DataResponse[CustomerResponse](data=CustomerResponse.model_validate(customer))


@router.delete(
    "/{customer_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_staff)]
)
async def delete_customer(
    customer_id: str,
    db: DB,
):
    """Delete a customer. Refused with 409 while the customer has orders."""
    await CustomerService(db).delete_customer(customer_id)
    return MessageResponse(message="Customer deleted successfully")
