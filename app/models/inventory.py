from decimal import Decimal
from enum import Enum
import uuid

from tortoise import fields, models


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    RETURN = "RETURN"
    TRANSFER = "TRANSFER"
    LOSS = "LOSS"


# Movement types that add to / remove from the item's stock
INBOUND_MOVEMENTS = (MovementType.IN, MovementType.RETURN)
OUTBOUND_MOVEMENTS = (MovementType.OUT, MovementType.LOSS)


class InventoryItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="inventory_items")
    name = fields.CharField(max_length=255)
    sku = fields.CharField(max_length=64, null=True)
    unit = fields.CharField(max_length=16)  # kg, L, pcs...
    current_stock = fields.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0"))
    min_stock = fields.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0"))  # Reorder threshold
    max_stock = fields.DecimalField(max_digits=14, decimal_places=3, null=True)
    unit_cost = fields.DecimalField(max_digits=12, decimal_places=2, null=True)
    supplier = fields.CharField(max_length=255, null=True)
    category = fields.CharField(max_length=64, null=True)
    location = fields.CharField(max_length=64, null=True)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "inventory_items"
        unique_together = (("restaurant", "sku"),)
        indexes = [
            ("restaurant_id", "is_active"),
        ]

    @property
    def is_low(self) -> bool:
        return self.current_stock <= self.min_stock


class InventoryMovement(models.Model):
    """Append-only stock ledger entry."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="inventory_movements")
    item = fields.ForeignKeyField("models.InventoryItem", related_name="movements")
    type = fields.CharEnumField(MovementType)
    quantity = fields.DecimalField(max_digits=14, decimal_places=3)  # Requested quantity
    # What actually changed the stock; an OUT clamped at zero applies less than requested
    applied_quantity = fields.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = fields.DecimalField(max_digits=12, decimal_places=2, null=True)
    total_cost = fields.DecimalField(max_digits=14, decimal_places=2, null=True)
    reference = fields.CharField(max_length=128, null=True)  # e.g. ORDER:ORD-000123
    notes = fields.TextField(null=True)
    created_by = fields.CharField(max_length=64, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "inventory_movements"
        indexes = [
            ("restaurant_id", "created_at"),
            ("item_id",),
            ("reference",),  # Order correlation for restoration
        ]
