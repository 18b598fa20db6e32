"""Customers and their loyalty balances.

A customer's ``loyalty_points`` is the sum of their loyalty transactions. Both
are written in the same transaction, with the customer row locked, so the
balance never drifts from the ledger and never goes negative.
"""
import logging
from typing import List, Optional
from uuid import UUID

from tortoise.expressions import Q
from tortoise.transactions import in_transaction

from app.core.errors import AppError, DuplicateResource, NotFound
from app.core.money import ZERO, to_money
from app.models.customer import Customer, LoyaltyProgram, LoyaltyTransaction, LoyaltyType
from app.models.table import Reservation
from app.schemas.customer import (
    CustomerCreate,
    CustomerDetailResponse,
    CustomerReservation,
    CustomerResponse,
    CustomerUpdate,
    LoyaltyBalanceResponse,
    LoyaltyEarnRequest,
    LoyaltyProgramInfo,
    LoyaltyProgramRequest,
    LoyaltyRedeemRequest,
    LoyaltyTransactionResponse,
    RedemptionResponse,
)

log = logging.getLogger("app.services.customers")


async def get_customer(restaurant_id: UUID, customer_id: UUID) -> Customer:
    customer = await Customer.get_or_none(id=customer_id, restaurant_id=restaurant_id)
    if not customer:
        raise NotFound("Customer not found")
    return customer


async def list_customers(
    restaurant_id: UUID, search: Optional[str] = None, is_active: Optional[bool] = None
) -> List[Customer]:
    query = Customer.filter(restaurant_id=restaurant_id)
    if is_active is not None:
        query = query.filter(is_active=is_active)
    if search:
        query = query.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(phone__contains=search)
            | Q(email__icontains=search)
        )
    return await query.order_by("first_name")


async def get_customer_detail(restaurant_id: UUID, customer_id: UUID) -> CustomerDetailResponse:
    customer = await get_customer(restaurant_id, customer_id)
    reservations = await Reservation.filter(customer_id=customer.id).order_by("-date").limit(10)
    transactions = await LoyaltyTransaction.filter(customer_id=customer.id).order_by("-created_at").limit(20)
    return CustomerDetailResponse(
        **CustomerResponse.model_validate(customer).model_dump(),
        reservations=[CustomerReservation.model_validate(r) for r in reservations],
        loyalty_transactions=[LoyaltyTransactionResponse.model_validate(t) for t in transactions],
    )


async def create_customer(restaurant_id: UUID, data: CustomerCreate) -> Customer:
    if await Customer.filter(restaurant_id=restaurant_id, phone=data.phone).exists():
        raise DuplicateResource("Customer with this phone already exists")
    customer = await Customer.create(restaurant_id=restaurant_id, **data.model_dump())
    log.info(f"Customer {customer.first_name} registered for restaurant {restaurant_id}")
    return customer


async def update_customer(restaurant_id: UUID, customer_id: UUID, data: CustomerUpdate) -> Customer:
    customer = await get_customer(restaurant_id, customer_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if changes.get("phone") and changes["phone"] != customer.phone:
        if await Customer.filter(restaurant_id=restaurant_id, phone=changes["phone"]).exists():
            raise DuplicateResource("Customer with this phone already exists")
    if changes:
        customer.update_from_dict(changes)
        await customer.save(update_fields=list(changes) + ["updated_at"])
    return customer


async def _locked_customer(restaurant_id: UUID, customer_id: UUID, conn) -> Customer:
    customer = await Customer.filter(
        id=customer_id, restaurant_id=restaurant_id
    ).select_for_update().using_db(conn).first()
    if not customer:
        raise NotFound("Customer not found")
    return customer


async def _book_points(customer: Customer, points: int, type_: LoyaltyType, conn, reference=None, notes=None):
    transaction = await LoyaltyTransaction.create(
        customer=customer, points=points, type=type_, reference=reference, notes=notes, using_db=conn
    )
    customer.loyalty_points += points
    await customer.save(update_fields=["loyalty_points", "updated_at"], using_db=conn)
    return transaction


async def add_loyalty_points(restaurant_id: UUID, data: LoyaltyEarnRequest) -> LoyaltyTransaction:
    """Credits points (EARN) or corrects the balance either way (ADJUST)."""
    if data.type == LoyaltyType.REDEEM:
        raise AppError("Use the redemption endpoint to redeem points", status_code=400)
    if data.type == LoyaltyType.EARN and data.points <= 0:
        raise AppError("Earned points must be positive", status_code=400)
    if data.points == 0:
        raise AppError("Adjustment must change the balance", status_code=400)

    async with in_transaction() as conn:
        customer = await _locked_customer(restaurant_id, data.customer_id, conn)
        if customer.loyalty_points + data.points < 0:
            raise AppError(f"Insufficient points. Available: {customer.loyalty_points}", status_code=400)
        transaction = await _book_points(
            customer, data.points, data.type, conn, reference=data.reference, notes=data.notes
        )

    log.info(f"{data.type.value} {data.points} points for customer {customer.id}; balance {customer.loyalty_points}")
    return transaction


async def redeem_loyalty_points(restaurant_id: UUID, data: LoyaltyRedeemRequest) -> RedemptionResponse:
    """Turns points into a discount amount under the restaurant's active program."""
    async with in_transaction() as conn:
        customer = await _locked_customer(restaurant_id, data.customer_id, conn)
        program = await LoyaltyProgram.filter(restaurant_id=restaurant_id, is_active=True).using_db(conn).first()
        if not program:
            raise AppError("No active loyalty program", status_code=400)
        if data.points < program.min_redemption:
            raise AppError(f"Minimum redemption is {program.min_redemption} points", status_code=400)
        if customer.loyalty_points < data.points:
            raise AppError(f"Insufficient points. Available: {customer.loyalty_points}", status_code=400)

        discount = to_money(program.amount_per_point * data.points)
        transaction = await _book_points(
            customer,
            -data.points,
            LoyaltyType.REDEEM,
            conn,
            notes=data.notes or f"Redeemed {data.points} points for {discount} discount",
        )

    log.info(f"Customer {customer.id} redeemed {data.points} points for {discount}")
    return RedemptionResponse(
        transaction=LoyaltyTransactionResponse.model_validate(transaction),
        discount_amount=discount,
        remaining_points=customer.loyalty_points,
    )


async def get_loyalty_balance(restaurant_id: UUID, customer_id: UUID) -> LoyaltyBalanceResponse:
    customer = await get_customer(restaurant_id, customer_id)
    program = await LoyaltyProgram.get_or_none(restaurant_id=restaurant_id, is_active=True)

    info = None
    if program:
        info = LoyaltyProgramInfo(
            name=program.name,
            points_per_amount=program.points_per_amount,
            amount_per_point=program.amount_per_point,
            min_redemption=program.min_redemption,
            redeemable_value=to_money((program.amount_per_point or ZERO) * customer.loyalty_points),
            can_redeem=customer.loyalty_points >= program.min_redemption,
        )
    return LoyaltyBalanceResponse(customer=CustomerResponse.model_validate(customer), program=info)


async def list_loyalty_transactions(restaurant_id: UUID, customer_id: UUID) -> List[LoyaltyTransaction]:
    customer = await get_customer(restaurant_id, customer_id)
    return await LoyaltyTransaction.filter(customer_id=customer.id).order_by("-created_at")


async def save_loyalty_program(restaurant_id: UUID, data: LoyaltyProgramRequest) -> LoyaltyProgram:
    program = await LoyaltyProgram.get_or_none(restaurant_id=restaurant_id)
    if program is None:
        return await LoyaltyProgram.create(restaurant_id=restaurant_id, **data.model_dump())
    program.update_from_dict(data.model_dump())
    await program.save()
    return program
