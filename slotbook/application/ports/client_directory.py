from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from slotbook.domain.entities.client import BanStatus, Client


class ClientDirectoryPort(ABC):
    @abstractmethod
    def get_client(self, owner_identity: str) -> Client | None:
        raise NotImplementedError

    @abstractmethod
    def upsert_client(
        self,
        owner_identity: str,
        name: str | None = None,
        phone: str | None = None,
        username: str | None = None,
        last_appointment_at: datetime | None = None,
    ) -> Client:
        """
        Create the client or refresh it: non-empty contact fields overwrite,
        total_appointments is incremented by one.
        """
        raise NotImplementedError

    @abstractmethod
    def touch_last_appointment(self, owner_identity: str, at: datetime) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_ban_status(self, owner_identity: str) -> BanStatus:
        raise NotImplementedError

    @abstractmethod
    def set_ban(self, owner_identity: str, banned: bool, reason: str | None = None) -> None:
        raise NotImplementedError
