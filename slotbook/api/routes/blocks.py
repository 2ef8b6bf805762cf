"""
Block API routes - administrative unavailability.
"""
from datetime import date as date_type, datetime, time
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from slotbook.api.dependencies import get_block_registry
from slotbook.models import BlockKind
from slotbook.services import BlockRegistry


# Pydantic schemas
class BlockCreate(BaseModel):
    """
    Block request body.

    Leave provider_id empty to block every provider, and leave both times
    empty to block whole days.
    """
    provider_id: Optional[UUID] = None
    start_date: date_type
    end_date: date_type
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    kind: BlockKind = BlockKind.OTHER
    reason: Optional[str] = Field(None, max_length=500)


class BlockResponse(BaseModel):
    id: UUID
    provider_id: Optional[UUID] = None
    start_date: date_type
    end_date: date_type
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    kind: BlockKind
    reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ExclusionResponse(BaseModel):
    """One day of a block."""
    block_id: UUID
    provider_id: Optional[UUID] = None
    date: date_type
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    full_day: bool
    kind: BlockKind
    reason: Optional[str] = None


# Router
router = APIRouter(prefix="/blocks", tags=["blocks"])


@router.post("", response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
def create_block(
    payload: BlockCreate,
    registry: BlockRegistry = Depends(get_block_registry),
) -> BlockResponse:
    block = registry.create_block(
        start_date=payload.start_date,
        end_date=payload.end_date,
        provider_id=payload.provider_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        kind=payload.kind,
        reason=payload.reason,
    )
    return BlockResponse.model_validate(block)


@router.get("", response_model=List[BlockResponse])
def list_blocks(
    provider_id: Optional[UUID] = Query(None, description="Provider; global blocks are included"),
    date_from: Optional[date_type] = Query(None, description="Blocks ending on or after this date"),
    date_to: Optional[date_type] = Query(None, description="Blocks starting on or before this date"),
    registry: BlockRegistry = Depends(get_block_registry),
) -> List[BlockResponse]:
    blocks = registry.list_blocks(provider_id=provider_id, date_from=date_from, date_to=date_to)
    return [BlockResponse.model_validate(b) for b in blocks]


@router.get("/exclusions", response_model=List[ExclusionResponse])
def get_exclusions(
    provider_id: UUID = Query(...),
    day: date_type = Query(..., alias="date"),
    registry: BlockRegistry = Depends(get_block_registry),
) -> List[ExclusionResponse]:
    """Expanded exclusions that apply to one provider on one date."""
    return [
        ExclusionResponse(
            block_id=e.block_id,
            provider_id=e.provider_id,
            date=e.date,
            start_time=e.start_time,
            end_time=e.end_time,
            full_day=e.is_full_day,
            kind=e.kind,
            reason=e.reason,
        )
        for e in registry.get_daily_exclusions(provider_id, day)
    ]


@router.get("/{block_id}", response_model=BlockResponse)
def get_block(
    block_id: UUID,
    registry: BlockRegistry = Depends(get_block_registry),
) -> BlockResponse:
    return BlockResponse.model_validate(registry.get_block(block_id))


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_block(
    block_id: UUID,
    registry: BlockRegistry = Depends(get_block_registry),
) -> Response:
    registry.delete_block(block_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
