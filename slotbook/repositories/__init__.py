"""
Store interfaces used by the booking services.
Each repository wraps one SQLAlchemy session and never commits on its own
unless the method says so.
"""
from slotbook.repositories.catalog_repository import CatalogRepository
from slotbook.repositories.block_repository import BlockRepository
from slotbook.repositories.reservation_repository import ReservationRepository

__all__ = [
    "CatalogRepository",
    "BlockRepository",
    "ReservationRepository",
]
