from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionPayload(BaseModel):
    """Request body for create and update.

    Server-owned fields (``id``, ``created_at``, ``updated_at``) are
    accepted for compatibility and ignored.
    """

    model_config = ConfigDict(extra="ignore")

    service_name: str = Field(..., min_length=1, examples=["Netflix"])
    price: int = Field(..., strict=True, examples=[1599])
    user_id: str = Field(..., min_length=1, examples=["60601fee-2bf1-4721-ae6f-7636e79a0cba"])
    start_date: str = Field(..., description="Month the subscription starts, MM-YYYY", examples=["01-2024"])
    end_date: Optional[str] = Field(None, description="Last active month, MM-YYYY; omit if open-ended")


class SubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    service_name: str
    price: int
    user_id: str
    start_date: str
    end_date: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TotalRead(BaseModel):
    total: int


class ErrorRead(BaseModel):
    error: str
