from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from subscription_service.database import get_db
from subscription_service.schemas.subscription import (
    ErrorRead,
    SubscriptionPayload,
    SubscriptionRead,
    TotalRead,
)
from subscription_service.services.subscription_service import SubscriptionService

router = APIRouter()

NOT_FOUND = {status.HTTP_404_NOT_FOUND: {"model": ErrorRead, "description": "Subscription not found"}}
BAD_REQUEST = {status.HTTP_400_BAD_REQUEST: {"model": ErrorRead, "description": "Invalid request"}}
SERVER_ERROR = {status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorRead, "description": "Store error"}}


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


@router.post(
    "",
    response_model=SubscriptionRead,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new subscription",
    responses={**BAD_REQUEST, **SERVER_ERROR},
)
def create_subscription(
    payload: SubscriptionPayload,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionRead:
    return service.create(payload)


@router.get(
    "",
    response_model=List[SubscriptionRead],
    response_model_exclude_none=True,
    summary="List subscriptions",
    responses=SERVER_ERROR,
)
def list_subscriptions(
    user_id: Optional[str] = Query(None, description="User ID filter"),
    service_name: Optional[str] = Query(None, description="Service name filter"),
    service: SubscriptionService = Depends(get_subscription_service),
) -> List[SubscriptionRead]:
    return service.list(user_id=user_id, service_name=service_name)


# Registered before /{subscription_id} so "total" is not taken for an id.
@router.get(
    "/total",
    response_model=TotalRead,
    summary="Calculate total subscription cost",
    responses={**BAD_REQUEST, **SERVER_ERROR},
)
def calculate_total(
    start_date: str = Query(..., description="Start date (MM-YYYY)"),
    end_date: str = Query(..., description="End date (MM-YYYY)"),
    user_id: Optional[str] = Query(None, description="User ID filter"),
    service_name: Optional[str] = Query(None, description="Service name filter"),
    service: SubscriptionService = Depends(get_subscription_service),
) -> TotalRead:
    """
    Sum prices of subscriptions active during any part of the window.
    """
    total = service.calculate_total(
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
        service_name=service_name,
    )
    return TotalRead(total=total)


@router.get(
    "/{subscription_id}",
    response_model=SubscriptionRead,
    response_model_exclude_none=True,
    summary="Get a subscription",
    responses=NOT_FOUND,
)
def get_subscription(
    subscription_id: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionRead:
    return service.get(subscription_id)


@router.put(
    "/{subscription_id}",
    response_model=SubscriptionRead,
    response_model_exclude_none=True,
    summary="Update a subscription",
    responses={**BAD_REQUEST, **NOT_FOUND},
)
def update_subscription(
    subscription_id: str,
    payload: SubscriptionPayload,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionRead:
    return service.update(subscription_id, payload)


@router.delete(
    "/{subscription_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a subscription",
    responses=NOT_FOUND,
)
def delete_subscription(
    subscription_id: str,
    service: SubscriptionService = Depends(get_subscription_service),
) -> Response:
    service.delete(subscription_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
