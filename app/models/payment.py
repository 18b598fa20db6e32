from enum import Enum
import uuid

from tortoise import fields, models


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    MOBILE_MONEY = "MOBILE_MONEY"
    BANK_TRANSFER = "BANK_TRANSFER"
    OTHER = "OTHER"


class Payment(models.Model):
    """
    Immutable ledger row. Refunds are new rows with a negative amount whose
    reference reads ``REFUND:<original payment id>``.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="payments")
    amount = fields.DecimalField(max_digits=14, decimal_places=2)
    method = fields.CharEnumField(PaymentMethod)
    reference = fields.CharField(max_length=128, null=True)
    notes = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "payments"
        indexes = [
            ("order_id",),
            ("created_at",),
        ]
