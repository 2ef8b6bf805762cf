"""
Provider API routes.
"""
from datetime import datetime, time
from typing import List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from slotbook.api.dependencies import get_catalog_service
from slotbook.services import CatalogService


# Pydantic schemas
class ProviderCreate(BaseModel):
    """
    Provider request body.

    working_days takes weekday numbers (0=Monday) or names such as
    "monday" or "lunes".
    """
    name: str = Field(..., min_length=1, max_length=255)
    working_days: Optional[List[Union[int, str]]] = None
    start_time: time
    end_time: time
    break_minutes: int = Field(0, ge=0)
    slot_interval_minutes: Optional[int] = Field(None, gt=0, le=240)


class ProviderResponse(BaseModel):
    id: UUID
    name: str
    working_days: List[int]
    start_time: time
    end_time: time
    break_minutes: int
    slot_interval_minutes: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# Router
router = APIRouter(prefix="/providers", tags=["providers"])


@router.post("", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
def create_provider(
    payload: ProviderCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ProviderResponse:
    provider = catalog.create_provider(
        name=payload.name,
        start_time=payload.start_time,
        end_time=payload.end_time,
        working_days=payload.working_days,
        break_minutes=payload.break_minutes,
        slot_interval_minutes=payload.slot_interval_minutes,
    )
    return ProviderResponse.model_validate(provider)


@router.get("", response_model=List[ProviderResponse])
def list_providers(
    active_only: bool = Query(True, description="Show only active providers"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[ProviderResponse]:
    return [ProviderResponse.model_validate(p) for p in catalog.list_providers(active_only=active_only)]


@router.get("/{provider_id}", response_model=ProviderResponse)
def get_provider(
    provider_id: UUID,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ProviderResponse:
    return ProviderResponse.model_validate(catalog.get_provider(provider_id))
