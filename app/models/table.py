from enum import Enum
import uuid

from tortoise import fields, models


class TableStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    CLEANING = "CLEANING"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SEATED = "SEATED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Reservations that still hold their table slot
BLOCKING_RESERVATION_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


class Table(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="tables")
    number = fields.CharField(max_length=16)
    capacity = fields.IntField()
    zone = fields.CharField(max_length=64, null=True)
    status = fields.CharEnumField(TableStatus, default=TableStatus.AVAILABLE)
    pos_x = fields.IntField(null=True)
    pos_y = fields.IntField(null=True)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "tables"
        unique_together = (("restaurant", "number"),)


class Reservation(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="reservations")
    table = fields.ForeignKeyField("models.Table", related_name="reservations", null=True, on_delete=fields.SET_NULL)
    customer = fields.ForeignKeyField(
        "models.Customer", related_name="reservations", null=True, on_delete=fields.SET_NULL
    )
    customer_name = fields.CharField(max_length=255)
    customer_phone = fields.CharField(max_length=32, null=True)
    customer_email = fields.CharField(max_length=255, null=True)
    guest_count = fields.IntField()
    date = fields.DateField()
    start_time = fields.DatetimeField()
    end_time = fields.DatetimeField(null=True)
    status = fields.CharEnumField(ReservationStatus, default=ReservationStatus.PENDING)
    notes = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "reservations"
        indexes = [
            ("restaurant_id", "date"),
            ("table_id", "status"),  # Conflict checks
        ]
