"""
Services API routes.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from slotbook.api.dependencies import get_catalog_service
from slotbook.services import CatalogService


# Pydantic schemas
class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    duration_minutes: int = Field(..., gt=0)
    price: int = Field(0, ge=0, description="Minor currency units")


class ServiceResponse(BaseModel):
    """Bookable service."""
    id: UUID
    name: str
    description: Optional[str] = None
    price: int
    duration_minutes: int
    is_active: bool = True

    model_config = {"from_attributes": True}


# Router
router = APIRouter(prefix="/services", tags=["services"])


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    service = catalog.create_service(
        name=payload.name,
        duration_minutes=payload.duration_minutes,
        price=payload.price,
        description=payload.description,
    )
    return ServiceResponse.model_validate(service)


@router.get("", response_model=List[ServiceResponse])
def list_services(
    active_only: bool = Query(True, description="Show only active services"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[ServiceResponse]:
    """
    List services ordered by name.

    Query parameters:
    - active_only: Show only active services (default: true)
    """
    return [ServiceResponse.model_validate(s) for s in catalog.list_services(active_only=active_only)]


@router.get("/{service_id}", response_model=ServiceResponse)
def get_service(
    service_id: UUID,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    return ServiceResponse.model_validate(catalog.get_service(service_id))
