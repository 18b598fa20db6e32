import logging
from typing import List, Optional
from uuid import UUID

from app.core.errors import DuplicateResource, NotFound
from app.events import notifier as events
from app.models.table import Table, TableStatus
from app.schemas.table import FloorPlanResponse, TableCreate, TableResponse

log = logging.getLogger("app.services.tables")


async def notify_table_status(notifier, table: Table) -> None:
    """Announces a table's current status to the tenant's dashboards."""
    await notifier.emit(
        table.restaurant_id,
        events.TABLE_STATUS_CHANGED,
        TableResponse.model_validate(table).model_dump(mode="json"),
    )


async def get_table(restaurant_id: UUID, table_id: UUID) -> Table:
    table = await Table.get_or_none(id=table_id, restaurant_id=restaurant_id, is_active=True)
    if not table:
        raise NotFound("Table not found")
    return table


async def list_tables(
    restaurant_id: UUID, zone: Optional[str] = None, status: Optional[TableStatus] = None
) -> List[Table]:
    query = Table.filter(restaurant_id=restaurant_id, is_active=True)
    if zone:
        query = query.filter(zone=zone)
    if status:
        query = query.filter(status=status)
    return await query.order_by("number")


async def create_table(restaurant_id: UUID, data: TableCreate) -> Table:
    if await Table.filter(restaurant_id=restaurant_id, number=data.number).exists():
        raise DuplicateResource(f"Table number {data.number} already exists")

    table = await Table.create(restaurant_id=restaurant_id, **data.model_dump())
    log.info(f"Table {table.number} created for restaurant {restaurant_id}")
    return table


async def update_table_status(restaurant_id: UUID, table_id: UUID, status: TableStatus, notifier) -> Table:
    """Manual status change by staff, e.g. releasing a table after cleaning."""
    table = await get_table(restaurant_id, table_id)
    table.status = status
    await table.save(update_fields=["status"])
    await notify_table_status(notifier, table)
    return table


async def get_floor_plan(restaurant_id: UUID) -> FloorPlanResponse:
    tables = await Table.filter(restaurant_id=restaurant_id, is_active=True).order_by("number")
    zones = []
    for table in tables:
        if table.zone and table.zone not in zones:
            zones.append(table.zone)
    return FloorPlanResponse(tables=[TableResponse.model_validate(t) for t in tables], zones=zones)


async def delete_table(restaurant_id: UUID, table_id: UUID) -> None:
    """Soft delete: the table disappears from the floor but keeps its history."""
    table = await get_table(restaurant_id, table_id)
    table.is_active = False
    await table.save(update_fields=["is_active"])
    log.info(f"Table {table.number} deactivated")
