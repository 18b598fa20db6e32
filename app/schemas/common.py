from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

from app.core.money import to_money, to_quantity

# Decimals leave the API as fixed-point strings ("11500.00")
Money = Annotated[Decimal, PlainSerializer(lambda v: str(to_money(v)), return_type=str, when_used="json")]
Quantity = Annotated[Decimal, PlainSerializer(lambda v: str(to_quantity(v)), return_type=str, when_used="json")]
