from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.schemas.customer import (
    CustomerCreate,
    CustomerResponse,
    CustomerUpdate,
    LoyaltyEarnRequest,
    LoyaltyProgramRequest,
    LoyaltyProgramResponse,
    LoyaltyRedeemRequest,
    LoyaltyTransactionResponse,
)
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import customer_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.get("/", response_model=SuccessResponse)
async def list_customers_endpoint(
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    """Search matches first name, last name, phone or email."""
    customers = await customer_service.list_customers(ctx.restaurant_id, search=search, is_active=is_active)
    return ok([CustomerResponse.model_validate(c) for c in customers])


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_customer_endpoint(
    payload: CustomerCreate, ctx: TenantContext = Depends(require_permission(Permission.CUSTOMER_CREATE))
):
    customer = await customer_service.create_customer(ctx.restaurant_id, payload)
    return ok(CustomerResponse.model_validate(customer))


# Loyalty

@router.put("/loyalty/program", response_model=SuccessResponse)
async def save_loyalty_program_endpoint(
    payload: LoyaltyProgramRequest, ctx: TenantContext = Depends(require_permission(Permission.CUSTOMER_UPDATE))
):
    program = await customer_service.save_loyalty_program(ctx.restaurant_id, payload)
    return ok(LoyaltyProgramResponse.model_validate(program))


@router.post("/loyalty/earn", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def earn_points_endpoint(
    payload: LoyaltyEarnRequest, ctx: TenantContext = Depends(require_permission(Permission.LOYALTY_MANAGE))
):
    transaction = await customer_service.add_loyalty_points(ctx.restaurant_id, payload)
    return ok(LoyaltyTransactionResponse.model_validate(transaction))


@router.post("/loyalty/redeem", response_model=SuccessResponse)
async def redeem_points_endpoint(
    payload: LoyaltyRedeemRequest, ctx: TenantContext = Depends(require_permission(Permission.LOYALTY_MANAGE))
):
    return ok(await customer_service.redeem_loyalty_points(ctx.restaurant_id, payload))


@router.get("/{customer_id}", response_model=SuccessResponse)
async def get_customer_endpoint(
    customer_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    """Customer with their latest reservations and loyalty transactions."""
    return ok(await customer_service.get_customer_detail(ctx.restaurant_id, customer_id))


@router.patch("/{customer_id}", response_model=SuccessResponse)
async def update_customer_endpoint(
    customer_id: UUID,
    payload: CustomerUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.CUSTOMER_UPDATE)),
):
    customer = await customer_service.update_customer(ctx.restaurant_id, customer_id, payload)
    return ok(CustomerResponse.model_validate(customer))


@router.get("/{customer_id}/loyalty", response_model=SuccessResponse)
async def loyalty_balance_endpoint(
    customer_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    return ok(await customer_service.get_loyalty_balance(ctx.restaurant_id, customer_id))


@router.get("/{customer_id}/loyalty/transactions", response_model=SuccessResponse)
async def loyalty_transactions_endpoint(
    customer_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    transactions = await customer_service.list_loyalty_transactions(ctx.restaurant_id, customer_id)
    return ok([LoyaltyTransactionResponse.model_validate(t) for t in transactions])
