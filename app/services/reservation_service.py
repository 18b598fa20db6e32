"""Reservations and the table slots they hold.

Two reservations conflict when they share a table, both still hold it
(PENDING or CONFIRMED) and their [start, end) windows intersect. A reservation
without an end time holds the table for RESERVATION_DEFAULT_MINUTES.
"""
import logging
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import List, Optional, Tuple
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from app.core.config import RESERVATION_DEFAULT_MINUTES
from app.core.errors import AppError, NotFound, TableConflict
from app.events import notifier as events
from app.models.customer import Customer
from app.models.table import BLOCKING_RESERVATION_STATUSES, Reservation, ReservationStatus, Table, TableStatus
from app.schemas.table import ReservationCreate, ReservationResponse
from app.services.table_service import notify_table_status

log = logging.getLogger("app.services.reservations")

# Statuses shown on the host stand for the current day
TODAY_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.SEATED)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=dt_timezone.utc)
    return value


def reservation_window(start_time: datetime, end_time: Optional[datetime]) -> Tuple[datetime, datetime]:
    return start_time, end_time or start_time + timedelta(minutes=RESERVATION_DEFAULT_MINUTES)


def windows_overlap(a: Tuple[datetime, datetime], b: Tuple[datetime, datetime]) -> bool:
    """Half-open interval test: touching windows do not overlap."""
    return a[0] < b[1] and b[0] < a[1]


async def _find_conflict(table_id: UUID, window: Tuple[datetime, datetime], conn=None) -> Optional[Reservation]:
    # Candidates come from the DB; the window test runs here so open-ended rows are handled alike
    candidates = await Reservation.filter(
        table_id=table_id,
        status__in=BLOCKING_RESERVATION_STATUSES,
        start_time__lt=window[1],
    ).using_db(conn)
    for existing in candidates:
        if windows_overlap(window, reservation_window(existing.start_time, existing.end_time)):
            return existing
    return None


def _payload(reservation: Reservation) -> dict:
    return ReservationResponse.model_validate(reservation).model_dump(mode="json")


async def get_reservation(restaurant_id: UUID, reservation_id: UUID) -> Reservation:
    reservation = await Reservation.get_or_none(id=reservation_id, restaurant_id=restaurant_id)
    if not reservation:
        raise NotFound("Reservation not found")
    return reservation


async def list_reservations(
    restaurant_id: UUID,
    on_date: Optional[date] = None,
    status: Optional[ReservationStatus] = None,
    table_id: Optional[UUID] = None,
) -> List[Reservation]:
    query = Reservation.filter(restaurant_id=restaurant_id)
    if on_date:
        query = query.filter(date=on_date)
    if status:
        query = query.filter(status=status)
    if table_id:
        query = query.filter(table_id=table_id)
    return await query.order_by("start_time")


async def list_today_reservations(restaurant_id: UUID) -> List[Reservation]:
    return await Reservation.filter(
        restaurant_id=restaurant_id,
        date=timezone.now().date(),
        status__in=TODAY_STATUSES,
    ).order_by("start_time")


async def create_reservation(restaurant_id: UUID, data: ReservationCreate, notifier) -> Reservation:
    """Books a slot; reservations taken here are confirmed straight away."""
    async with in_transaction() as conn:
        if data.customer_id and not await Customer.filter(
            id=data.customer_id, restaurant_id=restaurant_id
        ).using_db(conn).exists():
            raise NotFound("Customer not found")

        if data.table_id:
            # Lock the table so two bookings for it are checked one after the other
            table = await Table.filter(
                id=data.table_id, restaurant_id=restaurant_id, is_active=True
            ).select_for_update().using_db(conn).first()
            if not table:
                raise NotFound("Table not found")
            if data.guest_count > table.capacity:
                raise AppError(
                    f"Table {table.number} capacity ({table.capacity}) is less than guest count ({data.guest_count})",
                    status_code=400,
                )
            window = reservation_window(data.start_time, data.end_time)
            if await _find_conflict(table.id, window, conn):
                raise TableConflict("Table is already reserved for this time slot")

        reservation = await Reservation.create(
            restaurant_id=restaurant_id,
            status=ReservationStatus.CONFIRMED,
            using_db=conn,
            **data.model_dump(),
        )

    log.info(f"Reservation {reservation.id} for {reservation.customer_name} at {reservation.start_time}")
    await notifier.emit(restaurant_id, events.RESERVATION_CREATED, _payload(reservation))
    return reservation


async def update_reservation_status(
    restaurant_id: UUID, reservation_id: UUID, status: ReservationStatus, notifier
) -> Reservation:
    """
    Seating occupies the table and completion frees it. Other statuses leave
    the table as it is; staff release it explicitly.
    """
    reservation = await get_reservation(restaurant_id, reservation_id)

    table = None
    async with in_transaction() as conn:
        reservation.status = status
        await reservation.save(update_fields=["status", "updated_at"], using_db=conn)

        table_status = {
            ReservationStatus.SEATED: TableStatus.OCCUPIED,
            ReservationStatus.COMPLETED: TableStatus.AVAILABLE,
        }.get(status)
        if table_status and reservation.table_id:
            table = await Table.filter(id=reservation.table_id).using_db(conn).first()
            if table:
                table.status = table_status
                await table.save(update_fields=["status"], using_db=conn)

    await notifier.emit(restaurant_id, events.RESERVATION_UPDATED, _payload(reservation))
    if table:
        await notify_table_status(notifier, table)
    return reservation


async def cancel_reservation(restaurant_id: UUID, reservation_id: UUID, notifier) -> Reservation:
    """Cancels the booking and hands its table back."""
    reservation = await get_reservation(restaurant_id, reservation_id)

    table = None
    async with in_transaction() as conn:
        reservation.status = ReservationStatus.CANCELLED
        await reservation.save(update_fields=["status", "updated_at"], using_db=conn)

        if reservation.table_id:
            table = await Table.filter(id=reservation.table_id).using_db(conn).first()
            if table:
                table.status = TableStatus.AVAILABLE
                await table.save(update_fields=["status"], using_db=conn)

    log.info(f"Reservation {reservation.id} cancelled")
    await notifier.emit(restaurant_id, events.RESERVATION_UPDATED, _payload(reservation))
    if table:
        await notify_table_status(notifier, table)
    return reservation


async def get_available_tables(
    restaurant_id: UUID,
    start_time: datetime,
    end_time: Optional[datetime] = None,
    guest_count: Optional[int] = None,
) -> List[Table]:
    """Active tables, smallest first, that fit the party and are free for the slot."""
    query = Table.filter(restaurant_id=restaurant_id, is_active=True)
    if guest_count:
        query = query.filter(capacity__gte=guest_count)
    tables = await query.order_by("capacity", "number")

    window = reservation_window(as_utc(start_time), as_utc(end_time))
    available = []
    for table in tables:
        if not await _find_conflict(table.id, window):
            available.append(table)
    return available
