from enum import Enum
import uuid

from tortoise import fields, models

from app.core.permissions import Role


class ShiftStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class StaffMember(models.Model):
    """
    Directory entry for an employee. Credentials live with the auth service;
    the ``id`` here is the ``id`` claim of the employee's tokens.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="staff")
    email = fields.CharField(max_length=255)
    first_name = fields.CharField(max_length=100)
    last_name = fields.CharField(max_length=100)
    phone = fields.CharField(max_length=32, null=True)
    role = fields.CharEnumField(Role)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "staff_members"
        unique_together = (("restaurant", "email"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Shift(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="shifts")
    staff = fields.ForeignKeyField("models.StaffMember", related_name="shifts")
    start_time = fields.DatetimeField()
    end_time = fields.DatetimeField()
    status = fields.CharEnumField(ShiftStatus, default=ShiftStatus.SCHEDULED)
    notes = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "shifts"
        indexes = [("restaurant_id", "start_time")]


class ClockEntry(models.Model):
    """One worked stretch; ``clock_out`` stays empty while the employee is on the clock."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    staff = fields.ForeignKeyField("models.StaffMember", related_name="clock_entries")
    clock_in = fields.DatetimeField()
    clock_out = fields.DatetimeField(null=True)
    total_hours = fields.DecimalField(max_digits=8, decimal_places=2, null=True)
    notes = fields.TextField(null=True)

    class Meta:
        table = "clock_entries"
