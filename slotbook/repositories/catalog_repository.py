"""Catalog repository - providers, services and clients."""
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from slotbook.models import Client, Provider, Service


class CatalogRepository:
    """Repository for catalog lookups and inserts."""

    def __init__(self, session: Session):
        self.session = session

    def get_provider(self, provider_id: UUID) -> Optional[Provider]:
        return self.session.get(Provider, provider_id)

    def list_providers(self, active_only: bool = True) -> list[Provider]:
        stmt = select(Provider)
        if active_only:
            stmt = stmt.where(Provider.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Provider.name)
        return list(self.session.execute(stmt).scalars().all())

    def get_service(self, service_id: UUID) -> Optional[Service]:
        return self.session.get(Service, service_id)

    def get_services(self, service_ids: Iterable[UUID]) -> dict[UUID, Service]:
        """Fetch several services at once, keyed by id. Missing ids are absent."""
        ids = list(dict.fromkeys(service_ids))
        if not ids:
            return {}
        rows = self.session.execute(select(Service).where(Service.id.in_(ids))).scalars().all()
        return {service.id: service for service in rows}

    def list_services(self, active_only: bool = True) -> list[Service]:
        stmt = select(Service)
        if active_only:
            stmt = stmt.where(Service.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Service.name)
        return list(self.session.execute(stmt).scalars().all())

    def get_client(self, client_id: UUID) -> Optional[Client]:
        return self.session.get(Client, client_id)

    def add(self, record) -> None:
        """Stage a new provider, service or client."""
        self.session.add(record)
