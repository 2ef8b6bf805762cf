"""Catalog service - providers, services and clients.

Thin layer over CatalogRepository that enforces the record invariants the
booking rules depend on (ordered working hours, break shorter than the
slot interval, positive durations).
"""
from datetime import time
from typing import Iterable, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from slotbook.lib.errors import NotFoundError, ValidationError, translate_store_errors
from slotbook.lib.logging import get_logger
from slotbook.lib.settings import settings
from slotbook.models import Client, Provider, Service
from slotbook.repositories import CatalogRepository
from slotbook.services.rules import resolve_working_days

logger = get_logger(__name__)


class CatalogService:
    """Creates and looks up catalog records."""

    def __init__(self, session: Session, catalog: Optional[CatalogRepository] = None):
        self.session = session
        self.catalog = catalog or CatalogRepository(session)

    def _save(self, record, operation: str):
        try:
            with translate_store_errors(operation):
                self.catalog.add(record)
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return record

    # ===== Providers =====

    def create_provider(
        self,
        name: str,
        start_time: time,
        end_time: time,
        working_days: Optional[Iterable[Union[int, str]]] = None,
        break_minutes: int = 0,
        slot_interval_minutes: Optional[int] = None,
    ) -> Provider:
        """
        Register a provider.

        Working days accept weekday numbers (0=Monday) or names in English
        or Spanish; an empty or unrecognized list falls back to the
        configured default.

        Raises:
            ValidationError: Hours not ordered, or break not shorter than
                the slot interval
        """
        interval = slot_interval_minutes or settings.default_slot_interval_minutes
        if start_time >= end_time:
            raise ValidationError(
                "start_time must be before end_time",
                details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
            )
        if interval <= 0:
            raise ValidationError("slot_interval_minutes must be positive")
        if not 0 <= break_minutes < interval:
            raise ValidationError(
                "break_minutes must be at least 0 and shorter than the slot interval",
                details={"break_minutes": break_minutes, "slot_interval_minutes": interval},
            )

        provider = Provider(
            name=name,
            working_days=sorted(resolve_working_days(working_days, settings.default_working_days)),
            start_time=start_time,
            end_time=end_time,
            break_minutes=break_minutes,
            slot_interval_minutes=interval,
        )
        self._save(provider, "create provider")
        logger.info("Provider created", extra={"provider_id": str(provider.id)})
        return provider

    def get_provider(self, provider_id: UUID) -> Provider:
        provider = self.catalog.get_provider(provider_id)
        if provider is None:
            raise NotFoundError("Provider", provider_id)
        return provider

    def list_providers(self, active_only: bool = True) -> list[Provider]:
        return self.catalog.list_providers(active_only=active_only)

    # ===== Services =====

    def create_service(
        self,
        name: str,
        duration_minutes: int,
        price: int = 0,
        description: Optional[str] = None,
    ) -> Service:
        if duration_minutes <= 0:
            raise ValidationError(
                "duration_minutes must be positive",
                details={"duration_minutes": duration_minutes},
            )
        if price < 0:
            raise ValidationError("price must not be negative", details={"price": price})

        service = Service(
            name=name,
            description=description,
            duration_minutes=duration_minutes,
            price=price,
        )
        self._save(service, "create service")
        logger.info("Service created", extra={"service_id": str(service.id)})
        return service

    def get_service(self, service_id: UUID) -> Service:
        service = self.catalog.get_service(service_id)
        if service is None:
            raise NotFoundError("Service", service_id)
        return service

    def list_services(self, active_only: bool = True) -> list[Service]:
        return self.catalog.list_services(active_only=active_only)

    # ===== Clients =====

    def create_client(self, name: str, email: Optional[str] = None, phone: Optional[str] = None) -> Client:
        client = Client(name=name, email=email, phone=phone)
        return self._save(client, "create client")

    def get_client(self, client_id: UUID) -> Client:
        client = self.catalog.get_client(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client
