"""Reservation repository - reservation rows and the per-day commit guard."""
import hashlib
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from slotbook.lib.logging import get_logger, log_with_context
from slotbook.models import Reservation, ReservationState, ProviderDay, ACTIVE_STATES

logger = get_logger(__name__)


def provider_day_lock_key(provider_id: UUID, day: date) -> int:
    """
    Consistent integer key for pg_advisory_xact_lock.

    Args:
        provider_id: Provider the lock is scoped to
        day: Calendar date the lock is scoped to

    Returns:
        Positive integer within Postgres bigint range
    """
    hash_bytes = hashlib.sha256(f"{provider_id}:{day.isoformat()}".encode()).digest()[:8]
    lock_key = int.from_bytes(hash_bytes, byteorder="big", signed=False)
    if lock_key > 2**63 - 1:
        lock_key = lock_key - 2**64
    return abs(lock_key)


class ReservationRepository:
    """Repository for reservation reads and writes."""

    def __init__(self, session: Session):
        self.session = session

    # ===== Reads =====

    def get(self, reservation_id: UUID, for_update: bool = False) -> Optional[Reservation]:
        stmt = select(Reservation).where(Reservation.id == reservation_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def find(
        self,
        day: Optional[date] = None,
        provider_id: Optional[UUID] = None,
        client_id: Optional[UUID] = None,
        state: Optional[ReservationState] = None,
    ) -> list[Reservation]:
        stmt = select(Reservation)
        if day is not None:
            stmt = stmt.where(Reservation.date == day)
        if provider_id is not None:
            stmt = stmt.where(Reservation.provider_id == provider_id)
        if client_id is not None:
            stmt = stmt.where(Reservation.client_id == client_id)
        if state is not None:
            stmt = stmt.where(Reservation.state == state)
        stmt = stmt.order_by(Reservation.date, Reservation.start_time)
        return list(self.session.execute(stmt).scalars().all())

    def list_active_for_day(self, provider_id: UUID, day: date) -> list[Reservation]:
        return self.list_active_between(provider_id, day, day)

    def list_active_between(self, provider_id: UUID, start: date, end: date) -> list[Reservation]:
        """Active reservations of one provider with start <= date <= end."""
        stmt = (
            select(Reservation)
            .where(
                Reservation.provider_id == provider_id,
                Reservation.date >= start,
                Reservation.date <= end,
                Reservation.state.in_(list(ACTIVE_STATES)),
            )
            .order_by(Reservation.date, Reservation.start_time)
        )
        return list(self.session.execute(stmt).scalars().all())

    # ===== Writes =====

    def add(self, reservation: Reservation) -> None:
        self.session.add(reservation)

    # ===== Commit guard =====

    def ensure_provider_day(self, provider_id: UUID, day: date) -> None:
        """
        Make sure the guard row for (provider, day) exists.

        Runs in its own short transaction. Losing the insert race to another
        writer is fine: the row exists either way.
        """
        exists = self.session.execute(
            select(ProviderDay.id).where(ProviderDay.provider_id == provider_id, ProviderDay.date == day)
        ).scalar_one_or_none()
        if exists is not None:
            self.session.commit()
            return

        self.session.add(ProviderDay(provider_id=provider_id, date=day, version=0))
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            log_with_context(
                logger, "debug", "Guard row created concurrently",
                provider_id=str(provider_id), date=day.isoformat(),
            )

    def lock_provider_day(self, provider_id: UUID, day: date) -> None:
        """
        Serialize writers for (provider, day) until the transaction ends.

        Only Postgres has transaction-scoped advisory locks; elsewhere the
        guard row update in `claim_provider_day` is what serializes writers.
        """
        if self.session.get_bind().dialect.name != "postgresql":
            return
        self.session.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": provider_day_lock_key(provider_id, day)},
        )

    def claim_provider_day(self, provider_id: UUID, day: date) -> bool:
        """
        Bump the guard version, taking the (provider, day) write lock.

        Must be the first write of the booking transaction. Other writers for
        the same provider and day wait on this row until commit or rollback,
        so everything read afterwards in the transaction is current.

        Returns:
            False when the guard row is missing
        """
        result = self.session.execute(
            update(ProviderDay)
            .where(ProviderDay.provider_id == provider_id, ProviderDay.date == day)
            .values(version=ProviderDay.version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ===== State guard =====

    def compare_and_set_state(
        self,
        reservation_id: UUID,
        expected: ReservationState,
        target: ReservationState,
    ) -> bool:
        """
        Move the stored state from `expected` to `target`.

        Returns False when another transaction changed the state first.
        """
        result = self.session.execute(
            update(Reservation)
            .where(Reservation.id == reservation_id, Reservation.state == expected)
            .values(state=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
