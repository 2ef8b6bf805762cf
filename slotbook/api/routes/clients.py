"""
Client API routes.

Clients stand in for an external account system: the booking core only
checks that a client exists.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from slotbook.api.dependencies import get_catalog_service
from slotbook.services import CatalogService


# Pydantic schemas
class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)


class ClientResponse(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


# Router
router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ClientResponse:
    client = catalog.create_client(name=payload.name, email=payload.email, phone=payload.phone)
    return ClientResponse.model_validate(client)


@router.get("/{client_id}", response_model=ClientResponse)
def get_client(
    client_id: UUID,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ClientResponse:
    return ClientResponse.model_validate(catalog.get_client(client_id))
