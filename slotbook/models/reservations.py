"""
Reservation model - a client's booked interval with a provider.
"""
from datetime import date as date_type, datetime, time, timezone
from typing import Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import (
    String,
    Integer,
    Date,
    Time,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from slotbook.lib.db import Base


class ReservationState(str, enum.Enum):
    """Reservation state machine states."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# States whose interval still occupies the provider's calendar
ACTIVE_STATES = frozenset({
    ReservationState.PENDING,
    ReservationState.CONFIRMED,
    ReservationState.IN_PROGRESS,
})


class Reservation(Base):
    """
    Reservation entity.

    `end_time` is always `start_time + duration_minutes`; price and duration
    are snapshots of the booked services at creation time.
    """
    __tablename__ = "reservations"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Relationships
    client_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    service_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Timing
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pricing (minor currency units)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Status
    state: Mapped[ReservationState] = mapped_column(
        SQLEnum(ReservationState, name="reservation_state"),
        nullable=False,
        default=ReservationState.CONFIRMED,
        index=True,
    )

    # Notes
    client_notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Lifecycle timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    no_show_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items: Mapped[list["ReservationItem"]] = relationship(
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="ReservationItem.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="reservation_duration_positive"),
        CheckConstraint("end_time > start_time", name="reservation_end_after_start"),
        Index("ix_reservations_provider_date", "provider_id", "date"),
    )

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, provider_id={self.provider_id}, "
            f"{self.date} {self.start_time}-{self.end_time}, state={self.state})>"
        )


class ReservationItem(Base):
    """
    One booked service inside a reservation, with its duration and price
    copied at booking time. Position 0 is the primary service.
    """
    __tablename__ = "reservation_items"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    reservation_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)

    reservation: Mapped[Reservation] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<ReservationItem(reservation_id={self.reservation_id}, name={self.name})>"
