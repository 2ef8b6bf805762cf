"""Block registry: administrative unavailability ranges.

A block is stored once, however many days it covers. Availability queries
expand it into per-day exclusions on read, so deleting a block needs no
cleanup of derived rows.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from slotbook.lib.errors import NotFoundError, ValidationError, translate_store_errors
from slotbook.lib.logging import get_logger
from slotbook.lib.metrics import get_metrics_collector
from slotbook.models import Block, BlockKind
from slotbook.repositories import BlockRepository, CatalogRepository
from slotbook.services.rules import TimeRange

logger = get_logger(__name__)


@dataclass(frozen=True)
class DailyExclusion:
    """One calendar day of a block."""
    block_id: UUID
    provider_id: Optional[UUID]
    date: date
    start_time: Optional[time]
    end_time: Optional[time]
    kind: BlockKind
    reason: Optional[str]

    @property
    def is_full_day(self) -> bool:
        return self.start_time is None

    @property
    def time_range(self) -> TimeRange:
        if self.is_full_day:
            return TimeRange.full_day()
        return TimeRange.from_times(self.start_time, self.end_time)


class BlockRegistry:
    """Creates, deletes and expands blocks."""

    def __init__(
        self,
        session: Session,
        blocks: Optional[BlockRepository] = None,
        catalog: Optional[CatalogRepository] = None,
    ):
        self.session = session
        self.blocks = blocks or BlockRepository(session)
        self.catalog = catalog or CatalogRepository(session)
        self.metrics = get_metrics_collector()

    # ===== Administrative mutations =====

    def create_block(
        self,
        start_date: date,
        end_date: date,
        provider_id: Optional[UUID] = None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        kind: BlockKind = BlockKind.OTHER,
        reason: Optional[str] = None,
    ) -> Block:
        """
        Register a block for one provider or, without provider_id, for all.

        Raises:
            ValidationError: Reversed dates, half-specified or reversed
                time range, or unknown provider
        """
        if end_date < start_date:
            raise ValidationError(
                "end_date must not be before start_date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        if (start_time is None) != (end_time is None):
            raise ValidationError("start_time and end_time must be given together")
        if start_time is not None and start_time >= end_time:
            raise ValidationError(
                "start_time must be before end_time",
                details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
            )
        if provider_id is not None and self.catalog.get_provider(provider_id) is None:
            raise ValidationError(
                f"Unknown provider '{provider_id}'",
                details={"provider_id": str(provider_id)},
            )

        block = Block(
            provider_id=provider_id,
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            kind=kind,
            reason=reason,
        )
        try:
            with translate_store_errors("create block"):
                self.blocks.add(block)
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.metrics.increment_block_mutations("create")
        logger.info(
            "Block created",
            extra={
                "block_id": str(block.id),
                "provider_id": str(provider_id) if provider_id else None,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "kind": kind.value,
            },
        )
        return block

    def delete_block(self, block_id: UUID) -> None:
        """
        Remove a block. Its exclusions disappear from every later query.

        Raises:
            NotFoundError: No block with that id
        """
        block = self.get_block(block_id)
        try:
            with translate_store_errors("delete block"):
                self.blocks.delete(block)
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.metrics.increment_block_mutations("delete")
        logger.info("Block deleted", extra={"block_id": str(block_id)})

    # ===== Reads =====

    def get_block(self, block_id: UUID) -> Block:
        block = self.blocks.get(block_id)
        if block is None:
            raise NotFoundError("Block", block_id)
        return block

    def list_blocks(
        self,
        provider_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Block]:
        """Blocks intersecting the range; a provider filter includes global blocks."""
        return self.blocks.list_overlapping(provider_id, date_from, date_to)

    @staticmethod
    def expand_range(
        block: Block,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[DailyExclusion]:
        """
        One exclusion per calendar day in [start_date, end_date].

        `start` and `end` clamp the walk so a long block only expands over
        the days a query asks about.
        """
        current = max(block.start_date, start) if start else block.start_date
        last = min(block.end_date, end) if end else block.end_date
        days = []
        while current <= last:
            days.append(
                DailyExclusion(
                    block_id=block.id,
                    provider_id=block.provider_id,
                    date=current,
                    start_time=block.start_time,
                    end_time=block.end_time,
                    kind=block.kind,
                    reason=block.reason,
                )
            )
            current += timedelta(days=1)
        return days

    def get_daily_exclusions(self, provider_id: UUID, day: date) -> list[DailyExclusion]:
        """Expanded entries for one provider on one day, global blocks included."""
        return [
            exclusion
            for block in self.blocks.list_overlapping(provider_id, day, day)
            for exclusion in self.expand_range(block, day, day)
        ]

    def get_exclusions_for_date(self, provider_id: UUID, day: date) -> list[TimeRange]:
        return [exclusion.time_range for exclusion in self.get_daily_exclusions(provider_id, day)]

    def get_exclusions_between(self, provider_id: UUID, start: date, end: date) -> dict[date, list[TimeRange]]:
        """Exclusion ranges keyed by day for every day in [start, end] that has any."""
        by_day: dict[date, list[TimeRange]] = defaultdict(list)
        for block in self.blocks.list_overlapping(provider_id, start, end):
            for exclusion in self.expand_range(block, start, end):
                by_day[exclusion.date].append(exclusion.time_range)
        return dict(by_day)
