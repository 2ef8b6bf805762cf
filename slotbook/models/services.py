"""
Service model - bookable services with a fixed duration and price.
"""
from typing import Optional
from uuid import uuid4, UUID

from sqlalchemy import String, Integer, Boolean, CheckConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from slotbook.lib.db import Base


class Service(Base):
    """
    Service entity - bookable services.

    Price is kept in minor currency units. Reservations copy duration and
    price at creation, so later edits never change committed bookings.
    """
    __tablename__ = "services"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Service details
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Pricing and duration
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="service_duration_positive"),
        CheckConstraint("price >= 0", name="service_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name}, duration={self.duration_minutes})>"
