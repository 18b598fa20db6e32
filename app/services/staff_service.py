"""Staff directory, shift planning and time clock."""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from app.core.errors import AppError, DuplicateResource, NotFound
from app.core.money import ZERO, to_money
from app.core.permissions import Role
from app.models.order import Order, OrderStatus
from app.models.staff import ClockEntry, Shift, ShiftStatus, StaffMember
from app.schemas.staff import (
    ProfileUpdate,
    ShiftCreate,
    ShiftUpdate,
    StaffCreate,
    StaffDetailResponse,
    StaffPerformance,
    StaffResponse,
    StaffUpdate,
)

log = logging.getLogger("app.services.staff")

CLOCK_HISTORY_LIMIT = 200


async def get_staff_member(restaurant_id: UUID, staff_id) -> StaffMember:
    # Token ids are plain strings; anything that is not one of our UUIDs is unknown staff
    try:
        staff_id = UUID(str(staff_id))
    except ValueError:
        raise NotFound("Staff member not found")
    member = await StaffMember.get_or_none(id=staff_id, restaurant_id=restaurant_id)
    if not member:
        raise NotFound("Staff member not found")
    return member


async def _check_email_free(restaurant_id: UUID, email: str, exclude_id: Optional[UUID] = None) -> None:
    query = StaffMember.filter(restaurant_id=restaurant_id, email=email)
    if exclude_id:
        query = query.exclude(id=exclude_id)
    if await query.exists():
        raise DuplicateResource("Email already in use")


async def list_staff(
    restaurant_id: UUID, role: Optional[Role] = None, is_active: Optional[bool] = None
) -> List[StaffMember]:
    query = StaffMember.filter(restaurant_id=restaurant_id)
    if role:
        query = query.filter(role=role)
    if is_active is not None:
        query = query.filter(is_active=is_active)
    return await query.order_by("first_name", "last_name")


async def get_staff_detail(restaurant_id: UUID, staff_id: UUID) -> StaffDetailResponse:
    member = await get_staff_member(restaurant_id, staff_id)
    base = StaffResponse.model_validate(member).model_dump()
    return StaffDetailResponse(
        **base,
        order_count=await Order.filter(restaurant_id=restaurant_id, user_id=str(member.id)).count(),
        shift_count=await Shift.filter(staff_id=member.id).count(),
        clock_count=await ClockEntry.filter(staff_id=member.id).count(),
    )


async def create_staff_member(restaurant_id: UUID, data: StaffCreate) -> StaffMember:
    await _check_email_free(restaurant_id, data.email)
    member = await StaffMember.create(restaurant_id=restaurant_id, **data.model_dump())
    log.info(f"Staff member {member.full_name} ({member.role.value}) added to restaurant {restaurant_id}")
    return member


async def _apply_changes(restaurant_id: UUID, member: StaffMember, changes: dict) -> StaffMember:
    if changes.get("email") and changes["email"] != member.email:
        await _check_email_free(restaurant_id, changes["email"], exclude_id=member.id)
    if changes:
        member.update_from_dict(changes)
        await member.save(update_fields=list(changes))
    return member


async def update_staff_member(restaurant_id: UUID, staff_id: UUID, data: StaffUpdate) -> StaffMember:
    member = await get_staff_member(restaurant_id, staff_id)
    return await _apply_changes(restaurant_id, member, data.model_dump(exclude_unset=True, exclude_none=True))


async def update_own_profile(restaurant_id: UUID, user_id: str, data: ProfileUpdate) -> StaffMember:
    member = await get_staff_member(restaurant_id, user_id)
    return await _apply_changes(restaurant_id, member, data.model_dump(exclude_unset=True, exclude_none=True))


async def toggle_staff_active(restaurant_id: UUID, staff_id: UUID) -> StaffMember:
    member = await get_staff_member(restaurant_id, staff_id)
    member.is_active = not member.is_active
    await member.save(update_fields=["is_active"])
    log.info(f"Staff member {member.full_name} {'activated' if member.is_active else 'deactivated'}")
    return member


# Shifts

async def list_shifts(
    restaurant_id: UUID,
    staff_id: Optional[UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: Optional[ShiftStatus] = None,
) -> List[Shift]:
    query = Shift.filter(restaurant_id=restaurant_id)
    if staff_id:
        query = query.filter(staff_id=staff_id)
    if status:
        query = query.filter(status=status)
    if start:
        query = query.filter(start_time__gte=start)
    if end:
        query = query.filter(start_time__lte=end)
    return await query.order_by("start_time")


async def _get_shift(restaurant_id: UUID, shift_id: UUID) -> Shift:
    shift = await Shift.get_or_none(id=shift_id, restaurant_id=restaurant_id)
    if not shift:
        raise NotFound("Shift not found")
    return shift


async def create_shift(restaurant_id: UUID, data: ShiftCreate) -> Shift:
    member = await get_staff_member(restaurant_id, data.staff_id)
    return await Shift.create(
        restaurant_id=restaurant_id,
        staff=member,
        start_time=data.start_time,
        end_time=data.end_time,
        notes=data.notes,
        status=ShiftStatus.SCHEDULED,
    )


async def update_shift(restaurant_id: UUID, shift_id: UUID, data: ShiftUpdate) -> Shift:
    shift = await _get_shift(restaurant_id, shift_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    start = changes.get("start_time", shift.start_time)
    end = changes.get("end_time", shift.end_time)
    if end <= start:
        raise AppError("end_time must be after start_time", status_code=400)
    if changes:
        shift.update_from_dict(changes)
        await shift.save(update_fields=list(changes))
    return shift


async def delete_shift(restaurant_id: UUID, shift_id: UUID) -> None:
    shift = await _get_shift(restaurant_id, shift_id)
    await shift.delete()


# Time clock

async def clock_in(restaurant_id: UUID, user_id: str, notes: Optional[str] = None) -> ClockEntry:
    member = await get_staff_member(restaurant_id, user_id)
    async with in_transaction() as conn:
        # Serialises concurrent clock-ins of the same employee
        await StaffMember.filter(id=member.id).select_for_update().using_db(conn).first()
        if await ClockEntry.filter(staff_id=member.id, clock_out__isnull=True).using_db(conn).exists():
            raise AppError("Already clocked in. Please clock out first.", status_code=400)
        entry = await ClockEntry.create(staff=member, clock_in=timezone.now(), notes=notes, using_db=conn)

    log.info(f"{member.full_name} clocked in")
    return entry


async def clock_out(restaurant_id: UUID, user_id: str, notes: Optional[str] = None) -> ClockEntry:
    member = await get_staff_member(restaurant_id, user_id)
    async with in_transaction() as conn:
        entry = await ClockEntry.filter(
            staff_id=member.id, clock_out__isnull=True
        ).select_for_update().using_db(conn).first()
        if not entry:
            raise AppError("Not clocked in", status_code=400)

        entry.clock_out = timezone.now()
        hours = Decimal((entry.clock_out - entry.clock_in).total_seconds()) / Decimal(3600)
        entry.total_hours = to_money(hours)
        if notes:
            entry.notes = notes
        await entry.save(update_fields=["clock_out", "total_hours", "notes"], using_db=conn)

    log.info(f"{member.full_name} clocked out after {entry.total_hours} h")
    return entry


async def clock_history(
    restaurant_id: UUID,
    staff_id: Optional[UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[ClockEntry]:
    query = ClockEntry.filter(staff__restaurant_id=restaurant_id)
    if staff_id:
        query = query.filter(staff_id=staff_id)
    if start:
        query = query.filter(clock_in__gte=start)
    if end:
        query = query.filter(clock_in__lte=end)
    return await query.order_by("-clock_in").limit(CLOCK_HISTORY_LIMIT)


async def staff_performance(
    restaurant_id: UUID, start: Optional[datetime] = None, end: Optional[datetime] = None
) -> List[StaffPerformance]:
    """Paid sales and clocked hours per active employee, best sellers first."""
    members = await StaffMember.filter(restaurant_id=restaurant_id, is_active=True)

    orders = Order.filter(restaurant_id=restaurant_id, status=OrderStatus.PAID)
    entries = ClockEntry.filter(staff__restaurant_id=restaurant_id)
    if start:
        orders = orders.filter(created_at__gte=start)
        entries = entries.filter(clock_in__gte=start)
    if end:
        orders = orders.filter(created_at__lte=end)
        entries = entries.filter(clock_in__lte=end)

    sales = {}
    for order in await orders:
        count, total = sales.get(order.user_id, (0, ZERO))
        sales[order.user_id] = (count + 1, total + order.total)
    hours = {}
    for entry in await entries:
        hours[entry.staff_id] = hours.get(entry.staff_id, ZERO) + (entry.total_hours or ZERO)

    performance = []
    for member in members:
        count, total = sales.get(str(member.id), (0, ZERO))
        worked = to_money(hours.get(member.id, ZERO))
        performance.append(
            StaffPerformance(
                id=member.id,
                name=member.full_name,
                role=member.role,
                total_orders=count,
                total_sales=to_money(total),
                total_hours=worked,
                sales_per_hour=to_money(total / worked) if worked > ZERO else ZERO,
            )
        )
    performance.sort(key=lambda p: p.total_sales, reverse=True)
    return performance
