from decimal import Decimal
from enum import Enum
import uuid

from tortoise import fields, models


class LoyaltyType(str, Enum):
    EARN = "EARN"
    REDEEM = "REDEEM"
    ADJUST = "ADJUST"


class Customer(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="customers")
    first_name = fields.CharField(max_length=100)
    last_name = fields.CharField(max_length=100, null=True)
    email = fields.CharField(max_length=255, null=True)
    phone = fields.CharField(max_length=32)
    birth_date = fields.DateField(null=True)
    address = fields.CharField(max_length=255, null=True)
    notes = fields.TextField(null=True)
    # Running balance; always equals the sum of the customer's loyalty transactions
    loyalty_points = fields.IntField(default=0)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "customers"
        unique_together = (("restaurant", "phone"),)


class LoyaltyProgram(models.Model):
    """Redemption rules of a restaurant; at most one per tenant."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.OneToOneField("models.Restaurant", related_name="loyalty_program")
    name = fields.CharField(max_length=120)
    points_per_amount = fields.DecimalField(max_digits=10, decimal_places=4, default=Decimal("0"))
    amount_per_point = fields.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    min_redemption = fields.IntField(default=0)
    is_active = fields.BooleanField(default=True)

    class Meta:
        table = "loyalty_programs"


class LoyaltyTransaction(models.Model):
    """Append-only; redemptions are stored with negative points."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    customer = fields.ForeignKeyField("models.Customer", related_name="loyalty_transactions")
    points = fields.IntField()
    type = fields.CharEnumField(LoyaltyType)
    reference = fields.CharField(max_length=255, null=True)
    notes = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "loyalty_transactions"
