from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
MILLI = Decimal("0.001")
ZERO = Decimal("0")

# Tolerance used whenever two monetary totals are compared
EPSILON = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value: Number) -> Decimal:
    """Rounds to cents, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_quantity(value: Number) -> Decimal:
    """Rounds a stock quantity to the ledger precision."""
    return to_decimal(value).quantize(MILLI, rounding=ROUND_HALF_UP)


def percent_of(amount: Number, rate: Number) -> Decimal:
    return to_money(to_decimal(amount) * to_decimal(rate) / 100)


class OrderTotals(NamedTuple):
    subtotal: Decimal
    tax: Decimal
    service_charge: Decimal
    discount: Decimal
    total: Decimal


def compute_order_totals(subtotal: Number, tax_rate: Number, service_rate: Number, discount: Number = ZERO) -> OrderTotals:
    """
    Derives tax and service charge from the subtotal; the total always equals
    subtotal + tax + service_charge - discount.
    """
    subtotal = to_money(subtotal)
    discount = to_money(discount)
    tax = percent_of(subtotal, tax_rate)
    service_charge = percent_of(subtotal, service_rate)
    total = subtotal + tax + service_charge - discount
    return OrderTotals(subtotal, tax, service_charge, discount, total)
