from fastapi import APIRouter, Depends, Header, HTTPException, Query

from slotbook.api.v1.bookings import cancellation_response
from slotbook.api.v1.schemas import (
    AppointmentSchema,
    BanRequestSchema,
    BlockedIntervalSchema,
    BlockIntervalRequestSchema,
    CacheSweepResponseSchema,
    CancelByCodeRequestSchema,
    CancellationResponseSchema,
    CompleteExpiredRequestSchema,
    CompletionResponseSchema,
    DayScheduleResponseSchema,
    RevenueResponseSchema,
    ServiceCreateSchema,
    ServiceMutationResponseSchema,
    ServiceSchema,
    ServiceUpdateSchema,
)
from slotbook.application.exceptions import CalendarSourceError, CatalogStorageError
from slotbook.application.ports.service_catalog import ServiceMutationResult
from slotbook.application.use_cases.admin import AdminUseCase
from slotbook.application.use_cases.cancellation import CancellationUseCase
from slotbook.core.config import settings
from slotbook.infrastructure.security.admin_token import verify_admin_token
from slotbook.wiring.dependencies import get_admin_use_case, get_cancellation_use_case


def require_admin(x_admin_token: str | None = Header(None)) -> None:
    if not verify_admin_token(x_admin_token, settings.ADMIN_API_TOKEN, settings.ENV):
        raise HTTPException(status_code=403, detail="Admin token rejected")


router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def _mutation_response(result: ServiceMutationResult) -> ServiceMutationResponseSchema:
    return ServiceMutationResponseSchema(
        ok=result.ok,
        service=ServiceSchema.from_entity(result.service) if result.service else None,
        error=result.error,
    )


@router.post("/bookings/cancel-by-code", response_model=CancellationResponseSchema)
def cancel_by_code(
    req: CancelByCodeRequestSchema,
    uc: CancellationUseCase = Depends(get_cancellation_use_case),
):
    try:
        result = uc.cancel_by_code(req.cancel_code)
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return cancellation_response(result)


@router.post("/complete-expired", response_model=CompletionResponseSchema)
def complete_expired(
    req: CompleteExpiredRequestSchema | None = None,
    uc: CancellationUseCase = Depends(get_cancellation_use_case),
):
    now = req.now if req else None
    if now is not None and now.tzinfo is None:
        raise HTTPException(status_code=400, detail="now must carry a timezone offset")
    try:
        report = uc.complete_expired(now)
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return CompletionResponseSchema(
        completed=[AppointmentSchema.from_entity(a) for a in report.completed],
        failed=report.failed,
    )


@router.post("/cache/sweep", response_model=CacheSweepResponseSchema)
def sweep_cache(uc: AdminUseCase = Depends(get_admin_use_case)):
    return CacheSweepResponseSchema(removed=uc.sweep_cache())


@router.post("/blocked-intervals", response_model=BlockedIntervalSchema)
def block_interval(
    req: BlockIntervalRequestSchema,
    uc: AdminUseCase = Depends(get_admin_use_case),
):
    try:
        interval = uc.block_interval(req.date, req.time_start, req.time_end, req.note)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return BlockedIntervalSchema.from_entity(interval)


@router.get("/days/{day}", response_model=DayScheduleResponseSchema)
def list_day(day: str, uc: AdminUseCase = Depends(get_admin_use_case)):
    try:
        snapshot = uc.list_day(day)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return DayScheduleResponseSchema(
        date=snapshot.date.isoformat(),
        blocked=[BlockedIntervalSchema.from_entity(b) for b in snapshot.blocked],
        appointments=[AppointmentSchema.from_entity(a) for a in snapshot.appointments],
    )


@router.post("/services", response_model=ServiceMutationResponseSchema)
def create_service(req: ServiceCreateSchema, uc: AdminUseCase = Depends(get_admin_use_case)):
    try:
        result = uc.create_service(req.key, req.name, req.duration_minutes, req.price)
    except CatalogStorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _mutation_response(result)


@router.put("/services/{key}", response_model=ServiceMutationResponseSchema)
def update_service(key: str, req: ServiceUpdateSchema, uc: AdminUseCase = Depends(get_admin_use_case)):
    try:
        result = uc.update_service(key, req.name, req.duration_minutes, req.price, req.clear_price)
    except CatalogStorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _mutation_response(result)


@router.delete("/services/{key}", response_model=ServiceMutationResponseSchema)
def delete_service(key: str, uc: AdminUseCase = Depends(get_admin_use_case)):
    try:
        result = uc.delete_service(key)
    except CatalogStorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _mutation_response(result)


@router.post("/bans/{owner_identity}")
def ban_client(
    owner_identity: str,
    req: BanRequestSchema | None = None,
    uc: AdminUseCase = Depends(get_admin_use_case),
) -> dict[str, str]:
    try:
        uc.ban_client(owner_identity, req.reason if req else None)
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"status": "banned"}


@router.delete("/bans/{owner_identity}")
def unban_client(owner_identity: str, uc: AdminUseCase = Depends(get_admin_use_case)) -> dict[str, str]:
    try:
        uc.unban_client(owner_identity)
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"status": "unbanned"}


@router.get("/revenue", response_model=RevenueResponseSchema)
def revenue(
    date_from: str = Query(...),
    date_to: str = Query(...),
    uc: AdminUseCase = Depends(get_admin_use_case),
):
    try:
        stats = uc.revenue_stats(date_from, date_to)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CalendarSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return RevenueResponseSchema.from_stats(stats)
