"""Block repository - storage for administrative unavailability ranges."""
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from slotbook.models import Block


class BlockRepository:
    """Repository for block rows. Rows are never expanded in storage."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, block_id: UUID) -> Optional[Block]:
        return self.session.get(Block, block_id)

    def add(self, block: Block) -> None:
        self.session.add(block)

    def delete(self, block: Block) -> None:
        self.session.delete(block)

    def list_overlapping(
        self,
        provider_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        include_global: bool = True,
    ) -> list[Block]:
        """
        Blocks whose date range intersects [date_from, date_to].

        With a provider id, returns that provider's blocks plus global ones
        (unless include_global is False). Without one, returns every block.
        """
        stmt = select(Block)
        if provider_id is not None:
            if include_global:
                stmt = stmt.where(or_(Block.provider_id == provider_id, Block.provider_id.is_(None)))
            else:
                stmt = stmt.where(Block.provider_id == provider_id)
        if date_from is not None:
            stmt = stmt.where(Block.end_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Block.start_date <= date_to)
        stmt = stmt.order_by(Block.start_date, Block.start_time)
        return list(self.session.execute(stmt).scalars().all())
