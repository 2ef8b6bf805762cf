"""Booking core services."""
from slotbook.services.block_registry import BlockRegistry, DailyExclusion
from slotbook.services.availability_service import AvailabilityCalculator, TimeSlot, SlotCheck, DaySummary
from slotbook.services.booking_coordinator import BookingCoordinator, ReservationRequest
from slotbook.services.catalog_service import CatalogService

__all__ = [
    "BlockRegistry",
    "DailyExclusion",
    "AvailabilityCalculator",
    "TimeSlot",
    "SlotCheck",
    "DaySummary",
    "BookingCoordinator",
    "ReservationRequest",
    "CatalogService",
]
