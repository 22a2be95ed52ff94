from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from slotbook.application.use_cases.revenue_stats import RevenueStats
from slotbook.application.utils.time_parser import format_time
from slotbook.domain.entities.appointment import Appointment
from slotbook.domain.entities.blocked_interval import BlockedInterval
from slotbook.domain.entities.service import Service
from slotbook.domain.entities.slot import Slot


class ServiceSchema(BaseModel):
    key: str
    name: str
    duration_minutes: int
    price: float | None = None

    @classmethod
    def from_entity(cls, service: Service) -> "ServiceSchema":
        return cls(key=service.key, name=service.name, duration_minutes=service.duration_minutes, price=service.price)


class SlotSchema(BaseModel):
    label: str
    start: datetime
    end: datetime

    @classmethod
    def from_entity(cls, slot: Slot) -> "SlotSchema":
        return cls(label=slot.label, start=slot.start, end=slot.end)


class SlotsResponseSchema(BaseModel):
    service_key: str
    date: str
    slots: list[SlotSchema]


class ContactSchema(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    username: str | None = None


class BookRequestSchema(BaseModel):
    service_key: str
    date: str
    time: str
    owner_identity: str | None = None
    contact: ContactSchema
    comment: str = ""


class AppointmentSchema(BaseModel):
    id: str
    created_at: datetime
    service_key: str
    service_name: str
    price: float | None = None
    date: str
    time_start: str
    time_end: str
    owner_identity: str | None = None
    contact_name: str
    contact_phone: str
    contact_username: str | None = None
    comment: str = ""
    cancel_code: str
    status: str
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @classmethod
    def from_entity(cls, appointment: Appointment) -> "AppointmentSchema":
        return cls(
            id=appointment.id,
            created_at=appointment.created_at,
            service_key=appointment.service_key,
            service_name=appointment.service_name,
            price=appointment.price,
            date=appointment.date.isoformat(),
            time_start=format_time(appointment.time_start),
            time_end=format_time(appointment.time_end),
            owner_identity=appointment.owner_identity,
            contact_name=appointment.contact_name,
            contact_phone=appointment.contact_phone,
            contact_username=appointment.contact_username,
            comment=appointment.comment,
            cancel_code=appointment.cancel_code,
            status=appointment.status.value,
            completed_at=appointment.completed_at,
            cancelled_at=appointment.cancelled_at,
        )


class BookingResponseSchema(BaseModel):
    ok: bool
    appointment: AppointmentSchema | None = None
    reason: str | None = None


class CancelRequestSchema(BaseModel):
    owner_identity: str


class CancelByCodeRequestSchema(BaseModel):
    cancel_code: str


class CancellationResponseSchema(BaseModel):
    ok: bool
    appointment: AppointmentSchema | None = None
    reason: str | None = None


class CompleteExpiredRequestSchema(BaseModel):
    now: datetime | None = None


class CompletionResponseSchema(BaseModel):
    completed: list[AppointmentSchema] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


class BlockIntervalRequestSchema(BaseModel):
    date: str
    time_start: str
    time_end: str
    note: str = ""


class BlockedIntervalSchema(BaseModel):
    date: str
    time_start: str
    time_end: str
    note: str = ""

    @classmethod
    def from_entity(cls, interval: BlockedInterval) -> "BlockedIntervalSchema":
        return cls(
            date=interval.date.isoformat(),
            time_start=format_time(interval.time_start),
            time_end=format_time(interval.time_end),
            note=interval.note,
        )


class DayScheduleResponseSchema(BaseModel):
    date: str
    blocked: list[BlockedIntervalSchema]
    appointments: list[AppointmentSchema]


class ServiceCreateSchema(BaseModel):
    key: str
    name: str
    duration_minutes: int
    price: float | None = None


class ServiceUpdateSchema(BaseModel):
    name: str | None = None
    duration_minutes: int | None = None
    price: float | None = None
    clear_price: bool = False


class ServiceMutationResponseSchema(BaseModel):
    ok: bool
    service: ServiceSchema | None = None
    error: str | None = None


class BanRequestSchema(BaseModel):
    reason: str | None = None


class ServiceRevenueSchema(BaseModel):
    service: str
    revenue: float
    count: int


class RevenueResponseSchema(BaseModel):
    total: float
    count: int
    by_service: list[ServiceRevenueSchema]

    @classmethod
    def from_stats(cls, stats: RevenueStats) -> "RevenueResponseSchema":
        return cls(
            total=stats.total,
            count=stats.count,
            by_service=[
                ServiceRevenueSchema(service=item.service, revenue=item.revenue, count=item.count)
                for item in stats.by_service
            ],
        )


class CacheSweepResponseSchema(BaseModel):
    removed: int
