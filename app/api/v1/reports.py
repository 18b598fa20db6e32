from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import report_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/dashboard", response_model=SuccessResponse)
async def dashboard_endpoint(ctx: TenantContext = Depends(require_permission(Permission.VIEW))):
    """Today's figures for the dashboard home screen."""
    return ok(await report_service.dashboard(ctx.restaurant_id))


@router.get("/revenue", response_model=SuccessResponse)
async def revenue_endpoint(
    period: Optional[str] = Query(None, pattern="^(week|month|year)$"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    ctx: TenantContext = Depends(require_permission(Permission.REPORT_VIEW)),
):
    return ok(await report_service.revenue_report(ctx.restaurant_id, period, start_date, end_date))


@router.get("/sales-by-category", response_model=SuccessResponse)
async def sales_by_category_endpoint(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    ctx: TenantContext = Depends(require_permission(Permission.REPORT_VIEW)),
):
    return ok(await report_service.sales_by_category(ctx.restaurant_id, start_date, end_date))


@router.get("/top-items", response_model=SuccessResponse)
async def top_items_endpoint(
    limit: int = Query(20, gt=0, le=100),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    ctx: TenantContext = Depends(require_permission(Permission.REPORT_VIEW)),
):
    return ok(await report_service.top_items(ctx.restaurant_id, limit, start_date, end_date))


@router.get("/table-turnover", response_model=SuccessResponse)
async def table_turnover_endpoint(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    ctx: TenantContext = Depends(require_permission(Permission.REPORT_VIEW)),
):
    return ok(await report_service.table_turnover(ctx.restaurant_id, start_date, end_date))
