from fastapi import APIRouter, Depends, HTTPException, Query

from slotbook.api.v1.schemas import (
    AppointmentSchema,
    BookingResponseSchema,
    BookRequestSchema,
    CancellationResponseSchema,
    CancelRequestSchema,
    ServiceSchema,
    SlotSchema,
    SlotsResponseSchema,
)
from slotbook.application.exceptions import CalendarSourceError, CatalogStorageError, UnknownServiceError
from slotbook.application.ports.service_catalog import ServiceCatalogPort
from slotbook.application.use_cases.booking import BookingUseCase
from slotbook.application.use_cases.cancellation import CancellationUseCase
from slotbook.domain.entities.client import ContactInfo
from slotbook.domain.entities.results import CancellationResult
from slotbook.wiring.dependencies import get_booking_use_case, get_cancellation_use_case, get_service_catalog

router = APIRouter()


def cancellation_response(result: CancellationResult) -> CancellationResponseSchema:
    return CancellationResponseSchema(
        ok=result.ok,
        appointment=AppointmentSchema.from_entity(result.appointment) if result.appointment else None,
        reason=result.reason.value if result.reason else None,
    )


@router.get("/services", response_model=list[ServiceSchema])
def list_services(catalog: ServiceCatalogPort = Depends(get_service_catalog)):
    try:
        services = catalog.list_services()
    except CatalogStorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [ServiceSchema.from_entity(s) for s in services]


@router.get("/slots", response_model=SlotsResponseSchema)
def list_slots(
    service_key: str = Query(...),
    date: str = Query(...),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        slots = uc.list_available_slots(service_key, date)
    except UnknownServiceError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (CalendarSourceError, CatalogStorageError) as e:
        raise HTTPException(status_code=502, detail=str(e))

    return SlotsResponseSchema(
        service_key=service_key,
        date=date,
        slots=[SlotSchema.from_entity(s) for s in slots],
    )


@router.post("/bookings", response_model=BookingResponseSchema)
def book(
    req: BookRequestSchema,
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        result = uc.book(
            service_key=req.service_key,
            day=req.date,
            time_str=req.time,
            owner_identity=req.owner_identity,
            contact=ContactInfo(name=req.contact.name, phone=req.contact.phone, username=req.contact.username),
            comment=req.comment,
        )
    except UnknownServiceError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (CalendarSourceError, CatalogStorageError) as e:
        raise HTTPException(status_code=502, detail=str(e))

    return BookingResponseSchema(
        ok=result.ok,
        appointment=AppointmentSchema.from_entity(result.appointment) if result.ok and result.appointment else None,
        reason=result.reason.value if result.reason else None,
    )


@router.get("/bookings", response_model=list[AppointmentSchema])
def list_owner_bookings(
    owner_identity: str = Query(...),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        appointments = uc.list_upcoming_for_owner(owner_identity)
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [AppointmentSchema.from_entity(a) for a in appointments]


@router.post("/bookings/{appointment_id}/cancel", response_model=CancellationResponseSchema)
def cancel_by_owner(
    appointment_id: str,
    req: CancelRequestSchema,
    uc: CancellationUseCase = Depends(get_cancellation_use_case),
):
    try:
        result = uc.cancel_by_owner(appointment_id, req.owner_identity)
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return cancellation_response(result)
