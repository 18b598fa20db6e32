from decimal import Decimal
from enum import Enum
import uuid

from tortoise import fields, models


class OrderStatus(str, Enum):
    PENDING = "PENDING"  # Initial state, taken by the waiter
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"  # In the kitchen
    READY = "READY"
    SERVED = "SERVED"
    PAID = "PAID"  # Terminal
    CANCELLED = "CANCELLED"  # Terminal


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


# Orders in these states no longer hold a table
CLOSED_ORDER_STATUSES = (OrderStatus.PAID, OrderStatus.CANCELLED)


class Order(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="orders")
    table = fields.ForeignKeyField("models.Table", related_name="orders", null=True, on_delete=fields.SET_NULL)
    user_id = fields.CharField(max_length=64)  # Staff member who took the order
    order_number = fields.CharField(max_length=32)
    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PENDING)
    payment_status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING)
    payment_method = fields.CharField(max_length=32, null=True)
    # Monetary fields are derived from the items and restaurant rates
    subtotal = fields.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    tax = fields.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    service_charge = fields.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    discount = fields.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total = fields.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    guest_count = fields.IntField(default=1)
    notes = fields.TextField(null=True)
    completed_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        unique_together = (("restaurant", "order_number"),)
        indexes = [
            ("restaurant_id", "status"),  # Active order boards
            ("restaurant_id", "created_at"),  # Time-based reports
            ("table_id", "status"),  # Table occupancy checks
        ]


class OrderItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="items")
    menu_item = fields.ForeignKeyField("models.MenuItem", related_name="order_items")
    quantity = fields.IntField()
    unit_price = fields.DecimalField(max_digits=12, decimal_places=2)  # Price snapshot at order time
    total = fields.DecimalField(max_digits=14, decimal_places=2)
    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PENDING)
    modifiers = fields.JSONField(null=True)
    notes = fields.TextField(null=True)
    sent_to_kitchen_at = fields.DatetimeField(null=True)
    ready_at = fields.DatetimeField(null=True)
    served_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "order_items"
        indexes = [
            ("order_id",),  # Order line items
            ("menu_item_id",),  # Menu item popularity
        ]
