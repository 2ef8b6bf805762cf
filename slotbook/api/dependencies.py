"""
API dependencies for FastAPI dependency injection.

Every request gets its own session; the services built here share it so a
booking reads and writes through one transaction.
"""
from datetime import datetime
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from slotbook.lib.db import get_db as get_db_session
from slotbook.services import (
    AvailabilityCalculator,
    BlockRegistry,
    BookingCoordinator,
    CatalogService,
)
from slotbook.services.booking_coordinator import utc_now


# Re-export get_db for convenience
get_db = get_db_session


def get_clock() -> Callable[[], datetime]:
    """Source of "now". Tests override this to pin the time."""
    return utc_now


def get_block_registry(db: Session = Depends(get_db)) -> BlockRegistry:
    return BlockRegistry(db)


def get_availability_calculator(
    db: Session = Depends(get_db),
    block_registry: BlockRegistry = Depends(get_block_registry),
) -> AvailabilityCalculator:
    return AvailabilityCalculator(db, block_registry=block_registry)


def get_booking_coordinator(
    db: Session = Depends(get_db),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> BookingCoordinator:
    return BookingCoordinator(db, calculator=calculator, clock=clock)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)
