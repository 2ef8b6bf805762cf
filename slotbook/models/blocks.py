"""
Block model - administrative unavailability ranges.
"""
from datetime import date, datetime, time, timezone
from typing import Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import String, Date, Time, DateTime, ForeignKey, Enum as SQLEnum, CheckConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from slotbook.lib.db import Base


class BlockKind(str, enum.Enum):
    """Why a range is unavailable."""
    BREAK = "break"
    VACATION = "vacation"
    CLOSURE = "closure"
    OTHER = "other"


class Block(Base):
    """
    Block entity - a date range (optionally limited to a time-of-day range)
    during which one provider, or every provider, cannot be booked.

    Stored once per logical block. Per-day exclusions are derived on read.
    """
    __tablename__ = "blocks"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # NULL applies to all providers
    provider_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Both NULL means the whole day
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    kind: Mapped[BlockKind] = mapped_column(
        SQLEnum(BlockKind, name="block_kind"),
        nullable=False,
        default=BlockKind.OTHER,
    )
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="block_dates_ordered"),
    )

    @property
    def is_full_day(self) -> bool:
        return self.start_time is None and self.end_time is None

    def __repr__(self) -> str:
        return f"<Block(id={self.id}, provider_id={self.provider_id}, {self.start_date}..{self.end_date})>"
