from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.permissions import Permission, Role
from app.core.security import TenantContext, require_permission
from app.models.staff import ShiftStatus
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.schemas.staff import (
    ClockEntryResponse,
    ClockRequest,
    ProfileUpdate,
    ShiftCreate,
    ShiftResponse,
    ShiftUpdate,
    StaffCreate,
    StaffResponse,
    StaffUpdate,
)
from app.services import staff_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/", response_model=SuccessResponse)
async def list_staff_endpoint(
    role: Optional[Role] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE)),
):
    members = await staff_service.list_staff(ctx.restaurant_id, role=role, is_active=is_active)
    return ok([StaffResponse.model_validate(m) for m in members])


@router.get("/performance", response_model=SuccessResponse)
async def staff_performance_endpoint(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE)),
):
    """Paid sales, clocked hours and sales per hour for every active employee."""
    return ok(await staff_service.staff_performance(ctx.restaurant_id, start=start_date, end=end_date))


@router.patch("/me", response_model=SuccessResponse)
async def update_profile_endpoint(
    payload: ProfileUpdate, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    member = await staff_service.update_own_profile(ctx.restaurant_id, ctx.user_id, payload)
    return ok(StaffResponse.model_validate(member))


# Shifts

@router.get("/shifts", response_model=SuccessResponse)
async def list_shifts_endpoint(
    staff_id: Optional[UUID] = Query(None, alias="staffId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    shift_status: Optional[ShiftStatus] = Query(None, alias="status"),
    ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE)),
):
    shifts = await staff_service.list_shifts(
        ctx.restaurant_id, staff_id=staff_id, start=start_date, end=end_date, status=shift_status
    )
    return ok([ShiftResponse.model_validate(s) for s in shifts])


@router.post("/shifts", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_shift_endpoint(
    payload: ShiftCreate, ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE))
):
    shift = await staff_service.create_shift(ctx.restaurant_id, payload)
    return ok(ShiftResponse.model_validate(shift))


@router.patch("/shifts/{shift_id}", response_model=SuccessResponse)
async def update_shift_endpoint(
    shift_id: UUID, payload: ShiftUpdate, ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE))
):
    shift = await staff_service.update_shift(ctx.restaurant_id, shift_id, payload)
    return ok(ShiftResponse.model_validate(shift))


@router.delete("/shifts/{shift_id}", response_model=SuccessResponse)
async def delete_shift_endpoint(
    shift_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE))
):
    await staff_service.delete_shift(ctx.restaurant_id, shift_id)
    return ok({"message": "Shift deleted"})


# Time clock; any employee clocks themselves in and out

@router.post("/clock/in", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def clock_in_endpoint(
    payload: Optional[ClockRequest] = None, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    entry = await staff_service.clock_in(ctx.restaurant_id, ctx.user_id, notes=payload.notes if payload else None)
    return ok(ClockEntryResponse.model_validate(entry))


@router.post("/clock/out", response_model=SuccessResponse)
async def clock_out_endpoint(
    payload: Optional[ClockRequest] = None, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    entry = await staff_service.clock_out(ctx.restaurant_id, ctx.user_id, notes=payload.notes if payload else None)
    return ok(ClockEntryResponse.model_validate(entry))


@router.get("/clock/history", response_model=SuccessResponse)
async def clock_history_endpoint(
    staff_id: Optional[UUID] = Query(None, alias="staffId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE)),
):
    entries = await staff_service.clock_history(ctx.restaurant_id, staff_id=staff_id, start=start_date, end=end_date)
    return ok([ClockEntryResponse.model_validate(e) for e in entries])


# Staff members

@router.get("/{staff_id}", response_model=SuccessResponse)
async def get_staff_endpoint(
    staff_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE))
):
    return ok(await staff_service.get_staff_detail(ctx.restaurant_id, staff_id))


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_staff_endpoint(
    payload: StaffCreate, ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE))
):
    member = await staff_service.create_staff_member(ctx.restaurant_id, payload)
    return ok(StaffResponse.model_validate(member))


@router.patch("/{staff_id}", response_model=SuccessResponse)
async def update_staff_endpoint(
    staff_id: UUID, payload: StaffUpdate, ctx: TenantContext = Depends(require_permission(Permission.STAFF_MANAGE))
):
    member = await staff_service.update_staff_member(ctx.restaurant_id, staff_id, payload)
    return ok(StaffResponse.model_validate(member))


@router.patch("/{staff_id}/toggle-active", response_model=SuccessResponse)
async def toggle_staff_endpoint(
    staff_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.STAFF_TOGGLE))
):
    member = await staff_service.toggle_staff_active(ctx.restaurant_id, staff_id)
    return ok(StaffResponse.model_validate(member))
