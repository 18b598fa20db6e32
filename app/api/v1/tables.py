from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_notifier
from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.models.table import TableStatus
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.schemas.table import TableCreate, TableResponse, TableStatusUpdate
from app.services import table_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/", response_model=SuccessResponse)
async def list_tables_endpoint(
    zone: Optional[str] = None,
    table_status: Optional[TableStatus] = Query(None, alias="status"),
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    tables = await table_service.list_tables(ctx.restaurant_id, zone=zone, status=table_status)
    return ok([TableResponse.model_validate(t) for t in tables])


@router.get("/floor-plan", response_model=SuccessResponse)
async def floor_plan_endpoint(ctx: TenantContext = Depends(require_permission(Permission.VIEW))):
    """Tables with their positions, plus the zones they are grouped in."""
    return ok(await table_service.get_floor_plan(ctx.restaurant_id))


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_table_endpoint(
    payload: TableCreate, ctx: TenantContext = Depends(require_permission(Permission.TABLE_MANAGE))
):
    table = await table_service.create_table(ctx.restaurant_id, payload)
    return ok(TableResponse.model_validate(table))


@router.patch("/{table_id}/status", response_model=SuccessResponse)
async def update_table_status_endpoint(
    table_id: UUID,
    payload: TableStatusUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.TABLE_STATUS)),
    notifier=Depends(get_notifier),
):
    table = await table_service.update_table_status(ctx.restaurant_id, table_id, payload.status, notifier)
    return ok(TableResponse.model_validate(table))


@router.delete("/{table_id}", response_model=SuccessResponse)
async def delete_table_endpoint(
    table_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.TABLE_MANAGE))
):
    await table_service.delete_table(ctx.restaurant_id, table_id)
    return ok({"message": "Table deleted"})
