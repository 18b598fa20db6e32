from datetime import date, datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_notifier
from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.models.table import ReservationStatus
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.schemas.table import ReservationCreate, ReservationResponse, ReservationStatusUpdate, TableResponse
from app.services import reservation_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/", response_model=SuccessResponse)
async def list_reservations_endpoint(
    on_date: Optional[date] = Query(None, alias="date"),
    reservation_status: Optional[ReservationStatus] = Query(None, alias="status"),
    table_id: Optional[UUID] = None,
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    reservations = await reservation_service.list_reservations(
        ctx.restaurant_id, on_date=on_date, status=reservation_status, table_id=table_id
    )
    return ok([ReservationResponse.model_validate(r) for r in reservations])


@router.get("/today", response_model=SuccessResponse)
async def today_reservations_endpoint(ctx: TenantContext = Depends(require_permission(Permission.VIEW))):
    reservations = await reservation_service.list_today_reservations(ctx.restaurant_id)
    return ok([ReservationResponse.model_validate(r) for r in reservations])


@router.get("/available-tables", response_model=SuccessResponse)
async def available_tables_endpoint(
    start_time: datetime,
    end_time: Optional[datetime] = None,
    guest_count: Optional[int] = Query(None, gt=0),
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    """Tables that fit the party and have no overlapping booking."""
    tables = await reservation_service.get_available_tables(ctx.restaurant_id, start_time, end_time, guest_count)
    return ok([TableResponse.model_validate(t) for t in tables])


@router.get("/{reservation_id}", response_model=SuccessResponse)
async def get_reservation_endpoint(
    reservation_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    reservation = await reservation_service.get_reservation(ctx.restaurant_id, reservation_id)
    return ok(ReservationResponse.model_validate(reservation))


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_reservation_endpoint(
    payload: ReservationCreate,
    ctx: TenantContext = Depends(require_permission(Permission.RESERVATION_CREATE)),
    notifier=Depends(get_notifier),
):
    reservation = await reservation_service.create_reservation(ctx.restaurant_id, payload, notifier)
    return ok(ReservationResponse.model_validate(reservation))


@router.patch("/{reservation_id}/status", response_model=SuccessResponse)
async def update_reservation_status_endpoint(
    reservation_id: UUID,
    payload: ReservationStatusUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.RESERVATION_STATUS)),
    notifier=Depends(get_notifier),
):
    reservation = await reservation_service.update_reservation_status(
        ctx.restaurant_id, reservation_id, payload.status, notifier
    )
    return ok(ReservationResponse.model_validate(reservation))


@router.delete("/{reservation_id}", response_model=SuccessResponse)
async def cancel_reservation_endpoint(
    reservation_id: UUID,
    ctx: TenantContext = Depends(require_permission(Permission.RESERVATION_CANCEL)),
    notifier=Depends(get_notifier),
):
    """Cancels the booking and frees its table."""
    reservation = await reservation_service.cancel_reservation(ctx.restaurant_id, reservation_id, notifier)
    return ok(ReservationResponse.model_validate(reservation))
