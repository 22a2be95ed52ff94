from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any

from slotbook.application.exceptions import CatalogStorageError
from slotbook.application.ports.service_catalog import ServiceCatalogPort, ServiceMutationResult
from slotbook.domain.entities.service import Service

DEFAULT_SERVICES: dict[str, Service] = {
    "MEN_HAIRCUT": Service(key="MEN_HAIRCUT", name="Men's haircut", duration_minutes=60),
    "BEARD": Service(key="BEARD", name="Beard trim", duration_minutes=30),
    "BUZZCUT": Service(key="BUZZCUT", name="Buzz cut", duration_minutes=30),
    "WOMEN_HAIRCUT": Service(key="WOMEN_HAIRCUT", name="Women's haircut", duration_minutes=60),
}

_KEY_RE = re.compile(r"^[A-Za-z0-9_]+$")


def validate_service_fields(
    key: str | None = None,
    name: str | None = None,
    duration_minutes: Any = None,
    price: Any = None,
) -> str | None:
    """Return an error message, or None when the given fields are valid."""
    if key is not None and (not isinstance(key, str) or not _KEY_RE.match(key)):
        return "Key must contain only latin letters, digits and underscores"
    if name is not None and (not isinstance(name, str) or not name.strip()):
        return "Name must not be empty"
    if price is not None:
        try:
            if float(price) < 0:
                return "Price must be a non-negative number"
        except (TypeError, ValueError):
            return "Price must be a non-negative number"
    if duration_minutes is not None:
        try:
            if int(duration_minutes) <= 0:
                return "Duration must be a positive number of minutes"
        except (TypeError, ValueError):
            return "Duration must be a positive number of minutes"
    return None


class JsonServiceCatalog(ServiceCatalogPort):
    """
    Service catalog persisted as a JSON object keyed by service key.
    With file_path=None the catalog lives in memory only.
    """

    def __init__(self, file_path: str | None = None, seed: dict[str, Service] | None = None) -> None:
        self._path = Path(file_path) if file_path else None
        self._lock = threading.Lock()
        self._memory: dict[str, Service] = dict(DEFAULT_SERVICES if seed is None else seed)
        self._logger = logging.getLogger(__name__)

        if self._path is not None and not self._path.exists():
            self._logger.info("Seeding service catalog", extra={"path": str(self._path)})
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._save(self._memory)

    def _load(self) -> dict[str, Service]:
        if self._path is None:
            return dict(self._memory)
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f) or {}
        except (json.JSONDecodeError, OSError) as e:
            self._logger.error("Failed to load services file", extra={"error": str(e)})
            raise CatalogStorageError(f"Cannot read {self._path}: {e}") from e
        try:
            return {key: self._deserialize(key, value) for key, value in raw.items()}
        except (AttributeError, TypeError, ValueError) as e:
            raise CatalogStorageError(f"Malformed services file {self._path}: {e}") from e

    def _save(self, services: dict[str, Service]) -> None:
        if self._path is None:
            self._memory = dict(services)
            return
        temp_path = self._path.with_suffix(".json.tmp")
        payload = {key: self._serialize(service) for key, service in services.items()}
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise CatalogStorageError(f"Cannot write {self._path}: {e}") from e

    @staticmethod
    def _serialize(service: Service) -> dict[str, Any]:
        return {
            "key": service.key,
            "name": service.name,
            "price": service.price,
            "duration_minutes": service.duration_minutes,
        }

    @staticmethod
    def _deserialize(key: str, data: dict[str, Any]) -> Service:
        price = data.get("price")
        return Service(
            key=data.get("key", key),
            name=data.get("name", key),
            duration_minutes=int(data.get("duration_minutes") or 0),
            price=float(price) if price is not None else None,
        )

    def get_service(self, service_key: str) -> Service | None:
        if not service_key:
            return None
        with self._lock:
            return self._load().get(service_key.strip())

    def list_services(self) -> list[Service]:
        with self._lock:
            return list(self._load().values())

    def create_service(
        self,
        key: str,
        name: str,
        duration_minutes: int,
        price: float | None = None,
    ) -> ServiceMutationResult:
        error = validate_service_fields(key=key, name=name, duration_minutes=duration_minutes, price=price)
        if error:
            return ServiceMutationResult(ok=False, error=error)

        with self._lock:
            services = self._load()
            if key in services:
                return ServiceMutationResult(ok=False, error="A service with this key already exists")
            service = Service(
                key=key,
                name=name.strip(),
                duration_minutes=int(duration_minutes),
                price=float(price) if price is not None else None,
            )
            services[key] = service
            self._save(services)
        return ServiceMutationResult(ok=True, service=service)

    def update_service(
        self,
        key: str,
        name: str | None = None,
        duration_minutes: int | None = None,
        price: float | None = None,
        clear_price: bool = False,
    ) -> ServiceMutationResult:
        error = validate_service_fields(name=name, duration_minutes=duration_minutes, price=price)
        if error:
            return ServiceMutationResult(ok=False, error=error)

        with self._lock:
            services = self._load()
            current = services.get(key)
            if current is None:
                return ServiceMutationResult(ok=False, error="Service not found")
            updated = current
            if name is not None:
                updated = replace(updated, name=name.strip())
            if duration_minutes is not None:
                updated = replace(updated, duration_minutes=int(duration_minutes))
            if clear_price:
                updated = replace(updated, price=None)
            elif price is not None:
                updated = replace(updated, price=float(price))
            services[key] = updated
            self._save(services)
        return ServiceMutationResult(ok=True, service=updated)

    def delete_service(self, key: str) -> ServiceMutationResult:
        with self._lock:
            services = self._load()
            removed = services.pop(key, None)
            if removed is None:
                return ServiceMutationResult(ok=False, error="Service not found")
            self._save(services)
        return ServiceMutationResult(ok=True, service=removed)
