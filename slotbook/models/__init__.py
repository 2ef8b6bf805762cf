"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from slotbook.models.providers import Provider
from slotbook.models.services import Service
from slotbook.models.clients import Client
from slotbook.models.blocks import Block, BlockKind
from slotbook.models.reservations import Reservation, ReservationItem, ReservationState, ACTIVE_STATES
from slotbook.models.provider_days import ProviderDay

__all__ = [
    "Provider",
    "Service",
    "Client",
    "Block",
    "BlockKind",
    "Reservation",
    "ReservationItem",
    "ReservationState",
    "ACTIVE_STATES",
    "ProviderDay",
]
