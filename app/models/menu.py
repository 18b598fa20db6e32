import uuid

from tortoise import fields, models


class MenuCategory(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="menu_categories")
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    image = fields.CharField(max_length=512, null=True)
    sort_order = fields.IntField(default=0)
    is_active = fields.BooleanField(default=True)

    class Meta:
        table = "menu_categories"
        indexes = [
            ("restaurant_id", "is_active"),
        ]


class MenuItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="menu_items")
    category = fields.ForeignKeyField("models.MenuCategory", related_name="menu_items", null=True, on_delete=fields.SET_NULL)
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    # Food cost, maintained from the recipe
    cost = fields.DecimalField(max_digits=12, decimal_places=2, null=True)
    image = fields.CharField(max_length=512, null=True)
    preparation_time = fields.IntField(null=True)  # minutes
    is_available = fields.BooleanField(default=True)  # Toggled by staff during service
    is_active = fields.BooleanField(default=True)  # Soft delete flag
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "menu_items"
        indexes = [
            ("restaurant_id",),  # Fast restaurant menu queries
            ("restaurant_id", "is_active"),  # Composite: restaurant's active items
        ]

    @property
    def orderable(self) -> bool:
        return self.is_active and self.is_available


