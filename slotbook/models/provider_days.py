"""
ProviderDay model - per provider and date commit guard.
"""
from datetime import date as date_type
from uuid import uuid4, UUID

from sqlalchemy import Date, Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from slotbook.lib.db import Base


class ProviderDay(Base):
    """
    Version counter for one provider on one date.

    Every reservation write for the pair first bumps `version`. The
    update holds the row's write lock until commit, so writers for the
    same provider and day evaluate and insert one at a time.
    """
    __tablename__ = "provider_days"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    provider_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("provider_id", "date", name="uq_provider_day"),
    )

    def __repr__(self) -> str:
        return f"<ProviderDay(provider_id={self.provider_id}, date={self.date}, version={self.version})>"
