"""
Provider model - barbers that clients book time with.
"""
from datetime import datetime, time, timezone
from uuid import uuid4, UUID

from sqlalchemy import String, Integer, Boolean, Time, DateTime, JSON, CheckConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from slotbook.lib.db import Base


class Provider(Base):
    """
    Provider entity - a person whose calendar is booked.

    Working days are stored as Python weekday numbers (0=Monday).
    """
    __tablename__ = "providers"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Weekly schedule
    working_days: Mapped[list[int]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Weekdays worked, 0=Monday .. 6=Sunday",
    )
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    break_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Gap kept free after every reservation",
    )
    slot_interval_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=30,
        comment="Granularity of bookable start times",
    )

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="provider_hours_ordered"),
        CheckConstraint("break_minutes >= 0", name="provider_break_non_negative"),
        CheckConstraint(
            "break_minutes < slot_interval_minutes",
            name="provider_break_shorter_than_slot",
        ),
    )

    def __repr__(self) -> str:
        return f"<Provider(id={self.id}, name={self.name}, active={self.is_active})>"
