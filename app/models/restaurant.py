from decimal import Decimal
import uuid

from tortoise import fields, models


class Restaurant(models.Model):
    """A tenant. Every business record is scoped to one restaurant."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    name = fields.CharField(max_length=255)
    slug = fields.CharField(max_length=120, unique=True)  # Public digital-menu address
    currency = fields.CharField(max_length=8, default="FCFA")
    # Percentages applied to the order subtotal
    tax_rate = fields.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    service_charge = fields.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    address = fields.CharField(max_length=255, null=True)
    phone = fields.CharField(max_length=32, null=True)
    email = fields.CharField(max_length=255, null=True)
    logo = fields.CharField(max_length=512, null=True)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "restaurants"
        indexes = [
            ("is_active",),  # For filtering active restaurants
        ]


class OrderSequence(models.Model):
    """Per-tenant counter backing the human readable order numbers."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.OneToOneField("models.Restaurant", related_name="order_sequence")
    last_value = fields.IntField(default=0)

    class Meta:
        table = "order_sequences"
