from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.core.errors import AppError, DuplicateResource, NotFound, TableConflict
from app.events import notifier as events
from app.models.customer import Customer
from app.models.table import Reservation, ReservationStatus, Table, TableStatus
from app.schemas.table import ReservationCreate, TableCreate
from app.services import reservation_service, table_service
from app.services.reservation_service import reservation_window, windows_overlap

EVENING = datetime(2030, 6, 1, 19, 0, tzinfo=timezone.utc)


def booking(table, start, end=None, guests=2, name="Mbarga"):
    return ReservationCreate(
        table_id=table.id if table else None,
        customer_name=name,
        guest_count=guests,
        date=start.date(),
        start_time=start,
        end_time=end,
    )


class TestWindows:

    def test_half_open_windows_touching_do_not_overlap(self):
        first = (EVENING, EVENING + timedelta(hours=2))
        second = (EVENING + timedelta(hours=2), EVENING + timedelta(hours=4))
        assert not windows_overlap(first, second)
        assert windows_overlap(first, (EVENING + timedelta(hours=1), EVENING + timedelta(hours=3)))

    def test_missing_end_uses_default_duration(self):
        start, end = reservation_window(EVENING, None)
        assert end - start == timedelta(minutes=120)


class TestCreateReservation:

    @pytest.mark.asyncio
    async def test_overlapping_booking_conflicts(self, restaurant, table, notifier):
        await reservation_service.create_reservation(
            restaurant.id, booking(table, EVENING, EVENING + timedelta(hours=2)), notifier
        )

        with pytest.raises(TableConflict):
            await reservation_service.create_reservation(
                restaurant.id, booking(table, EVENING + timedelta(hours=1), EVENING + timedelta(hours=3)), notifier
            )
        assert await Reservation.all().count() == 1

    @pytest.mark.asyncio
    async def test_disjoint_bookings_are_accepted(self, restaurant, table, notifier):
        await reservation_service.create_reservation(
            restaurant.id, booking(table, EVENING, EVENING + timedelta(hours=2)), notifier
        )
        second = await reservation_service.create_reservation(
            restaurant.id, booking(table, EVENING + timedelta(hours=2), EVENING + timedelta(hours=4)), notifier
        )

        assert second.status == ReservationStatus.CONFIRMED
        assert len(notifier.of(events.RESERVATION_CREATED)) == 2

    @pytest.mark.asyncio
    async def test_open_ended_booking_blocks_default_window(self, restaurant, table, notifier):
        await reservation_service.create_reservation(restaurant.id, booking(table, EVENING), notifier)

        with pytest.raises(TableConflict):
            await reservation_service.create_reservation(
                restaurant.id, booking(table, EVENING + timedelta(minutes=90)), notifier
            )

    @pytest.mark.asyncio
    async def test_cancelled_booking_frees_slot(self, restaurant, table, notifier):
        first = await reservation_service.create_reservation(restaurant.id, booking(table, EVENING), notifier)
        await reservation_service.cancel_reservation(restaurant.id, first.id, notifier)

        await reservation_service.create_reservation(restaurant.id, booking(table, EVENING), notifier)
        assert await Reservation.filter(status=ReservationStatus.CONFIRMED).count() == 1

    @pytest.mark.asyncio
    async def test_party_larger_than_table(self, restaurant, table, notifier):
        with pytest.raises(AppError) as exc:
            await reservation_service.create_reservation(restaurant.id, booking(table, EVENING, guests=6), notifier)
        assert exc.value.status_code == 400

    def test_end_must_follow_start(self):
        with pytest.raises(ValueError):
            ReservationCreate(
                customer_name="Ngo",
                guest_count=2,
                date=date(2030, 6, 1),
                start_time=EVENING,
                end_time=EVENING - timedelta(minutes=30),
            )

    def test_date_must_be_day_of_start(self):
        with pytest.raises(ValueError):
            ReservationCreate(
                customer_name="Ngo",
                guest_count=2,
                date=date(2030, 6, 2),
                start_time=EVENING,
            )

    @pytest.mark.asyncio
    async def test_booking_linked_to_customer(self, restaurant, table, notifier):
        regular = await Customer.create(restaurant=restaurant, first_name="Mbarga", phone="699000111")
        request = booking(table, EVENING)
        request.customer_id = regular.id

        reservation = await reservation_service.create_reservation(restaurant.id, request, notifier)

        assert reservation.customer_id == regular.id

    @pytest.mark.asyncio
    async def test_unknown_customer_rejected(self, restaurant, table, notifier):
        request = booking(table, EVENING)
        request.customer_id = uuid4()

        with pytest.raises(NotFound):
            await reservation_service.create_reservation(restaurant.id, request, notifier)
        assert await Reservation.all().count() == 0


class TestReservationStatus:

    @pytest.mark.asyncio
    async def test_seating_and_completion_drive_table(self, restaurant, table, notifier):
        reservation = await reservation_service.create_reservation(restaurant.id, booking(table, EVENING), notifier)

        await reservation_service.update_reservation_status(restaurant.id, reservation.id, ReservationStatus.SEATED, notifier)
        assert (await Table.get(id=table.id)).status == TableStatus.OCCUPIED

        await reservation_service.update_reservation_status(
            restaurant.id, reservation.id, ReservationStatus.COMPLETED, notifier
        )
        assert (await Table.get(id=table.id)).status == TableStatus.AVAILABLE
        assert events.TABLE_STATUS_CHANGED in notifier.names()

    @pytest.mark.asyncio
    async def test_available_tables_excludes_booked_and_small(self, restaurant, table, notifier):
        big = await Table.create(restaurant=restaurant, number="T2", capacity=8)
        await Table.create(restaurant=restaurant, number="T3", capacity=2)
        await reservation_service.create_reservation(restaurant.id, booking(table, EVENING), notifier)

        free = await reservation_service.get_available_tables(restaurant.id, EVENING, guest_count=4)

        assert [t.id for t in free] == [big.id]


class TestTables:

    @pytest.mark.asyncio
    async def test_number_unique_per_restaurant(self, restaurant, table):
        with pytest.raises(DuplicateResource):
            await table_service.create_table(restaurant.id, TableCreate(number="T1", capacity=2))

    @pytest.mark.asyncio
    async def test_floor_plan_lists_zones(self, restaurant, table):
        await table_service.create_table(restaurant.id, TableCreate(number=12, capacity=6, zone="Salle"))

        plan = await table_service.get_floor_plan(restaurant.id)

        assert [t.number for t in plan.tables] == ["12", "T1"]
        assert sorted(plan.zones) == ["Salle", "Terrasse"]

    @pytest.mark.asyncio
    async def test_status_change_is_pushed(self, restaurant, table, notifier):
        await table_service.update_table_status(restaurant.id, table.id, TableStatus.CLEANING, notifier)

        payload = notifier.of(events.TABLE_STATUS_CHANGED)[0]
        assert payload["status"] == "CLEANING"
        assert payload["id"] == str(table.id)

    @pytest.mark.asyncio
    async def test_deleted_table_is_hidden(self, restaurant, table):
        await table_service.delete_table(restaurant.id, table.id)

        assert await table_service.list_tables(restaurant.id) == []
