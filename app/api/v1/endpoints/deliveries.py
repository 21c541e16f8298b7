from typing import Optional
from datetime import datetime

from fastapi import APIRouter, status, Query, Depends

from app.api.deps import DB, CurrentUser, require_staff
from app.models.delivery import Carrier, DeliveryStatus
from app.schemas.common import DataResponse, ListResponse, MessageResponse, Pagination
from app.schemas.delivery import (
    DeliveryCreate,
    DeliveryUpdate,
    DeliveryStatusUpdate,
    DeliveryResponse,
    DeliveryDetailResponse,
    DeliveryStats,
    TrackingResponse,
)
from app.services.delivery_service import DeliveryService


router = APIRouter(tags=["Deliveries"])


def _detail(delivery) -> DeliveryDetailResponse:
    # Callers load Delivery.order eagerly
    return DeliveryDetailResponse.model_validate(delivery)


@router.post(
    "",
    response_model=DataResponse[DeliveryResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_staff)]
)
async def create_delivery(
    data: DeliveryCreate,
    db: DB,
):
    """Open a delivery for an order. 409 if the order already has one."""
    delivery = await DeliveryService(db).create(data)
    return DataResponse[DeliveryResponse](data=DeliveryResponse.model_validate(delivery))


@router.get(
    "",
    response_model=ListResponse[DeliveryDetailResponse],
    dependencies=[Depends(require_staff)]
)
async def list_deliveries(
    db: DB,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[DeliveryStatus] = Query(None),
    carrier: Optional[Carrier] = Query(None),
    delivered: Optional[bool] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    deliveries, total = await DeliveryService(db).get_deliveries(
        status=status,
        carrier=carrier,
        delivered=delivered,
        start_date=start_date,
        end_date=end_date,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return ListResponse[DeliveryDetailResponse](
        data=[_detail(d) for d in deliveries],
        pagination=Pagination.build(page, limit, total),
    )


@router.get(
    "/stats",
    response_model=DataResponse[DeliveryStats],
    dependencies=[Depends(require_staff)]
)
async def get_delivery_stats(db: DB):
    stats = await DeliveryService(db).get_stats()
    return DataResponse[DeliveryStats](data=DeliveryStats.model_validate(stats))


@router.get(
    "/track/{tracking_number}",
    response_model=DataResponse[TrackingResponse],
)
async def track_delivery(
    tracking_number: str,
    db: DB,
):
    """
    Public tracking by tracking number.

    Returns the current status and a milestone timeline.
    """
    tracking = await DeliveryService(db).track(tracking_number)
    return DataResponse[TrackingResponse](data=TrackingResponse.model_validate(tracking))


@router.put(
    "/order/{order_id}",
    response_model=DataResponse[DeliveryResponse],
    dependencies=[Depends(require_staff)]
)
async def update_delivery(
    order_id: str,
    data: DeliveryUpdate,
    db: DB,
):
    delivery = await DeliveryService(db).update(order_id, data)
    return DataResponse[DeliveryResponse](data=DeliveryResponse.model_validate(delivery))


@router.put(
    "/order/{order_id}/status",
    response_model=DataResponse[DeliveryResponse],
    dependencies=[Depends(require_staff)]
)
async def update_delivery_status(
    order_id: str,
    data: DeliveryStatusUpdate,
    db: DB,
):
    """Setting delivered also moves the order to delivered."""
    delivery = await DeliveryService(db).update_status(order_id, data)
    return DataResponse[DeliveryResponse](data=DeliveryResponse.model_validate(delivery))


@router.delete(
    "/order/{order_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_staff)]
)
async def delete_delivery(
    order_id: str,
    db: DB,
):
    await DeliveryService(db).delete(order_id)
    return MessageResponse(message="Delivery record deleted successfully")


@router.get(
    "/{identifier}",
    response_model=DataResponse[DeliveryDetailResponse],
)
async def get_delivery(
    identifier: str,
    db: DB,
    current_user: CurrentUser,
):
    """Get a delivery by order ID or tracking number."""
    delivery = await DeliveryService(db).get_by_identifier(identifier)
    return DataResponse[DeliveryDetailResponse](data=_detail(delivery))
