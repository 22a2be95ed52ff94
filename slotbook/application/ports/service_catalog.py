from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from slotbook.domain.entities.service import Service


@dataclass(frozen=True)
class ServiceMutationResult:
    ok: bool
    service: Service | None = None
    error: str | None = None


class ServiceCatalogPort(ABC):
    @abstractmethod
    def get_service(self, service_key: str) -> Service | None:
        """Get service by key."""
        raise NotImplementedError

    @abstractmethod
    def list_services(self) -> list[Service]:
        raise NotImplementedError

    @abstractmethod
    def create_service(
        self,
        key: str,
        name: str,
        duration_minutes: int,
        price: float | None = None,
    ) -> ServiceMutationResult:
        raise NotImplementedError

    @abstractmethod
    def update_service(
        self,
        key: str,
        name: str | None = None,
        duration_minutes: int | None = None,
        price: float | None = None,
        clear_price: bool = False,
    ) -> ServiceMutationResult:
        """Only the given fields change. clear_price=True removes the price."""
        raise NotImplementedError

    @abstractmethod
    def delete_service(self, key: str) -> ServiceMutationResult:
        raise NotImplementedError
