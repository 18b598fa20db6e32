from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import digital_menu_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/public/{slug}", response_model=SuccessResponse)
async def public_menu_endpoint(slug: str):
    """Guest-facing menu. No authentication; unknown or inactive restaurants are 404."""
    return ok(await digital_menu_service.get_public_menu(slug))


@router.get("/public/{slug}/item/{item_id}", response_model=SuccessResponse)
async def item_availability_endpoint(slug: str, item_id: UUID):
    return ok(await digital_menu_service.check_item_availability(slug, item_id))


@router.get("/qr", response_model=SuccessResponse)
async def all_table_qrs_endpoint(
    base_url: Optional[str] = None, ctx: TenantContext = Depends(require_permission(Permission.QR_GENERATE))
):
    return ok(await digital_menu_service.generate_all_table_qrs(ctx.restaurant, base_url))


@router.get("/qr/{table_id}", response_model=SuccessResponse)
async def table_qr_endpoint(
    table_id: UUID,
    base_url: Optional[str] = None,
    ctx: TenantContext = Depends(require_permission(Permission.QR_GENERATE)),
):
    return ok(await digital_menu_service.generate_table_qr(ctx.restaurant, table_id, base_url))
