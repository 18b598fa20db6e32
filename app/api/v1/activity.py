from fastapi import APIRouter, Depends, Query

from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import activity_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/", response_model=SuccessResponse)
async def recent_activity_endpoint(
    limit: int = Query(50, ge=1, le=100),
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    """Latest orders, payments, reservations and stock movements, newest first."""
    return ok(await activity_service.recent_activity(ctx.restaurant, limit=limit))
