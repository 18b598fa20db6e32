from decimal import Decimal
import uuid

from tortoise import fields, models


class Recipe(models.Model):
    """Bill of materials for one sellable menu item."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="recipes")
    menu_item = fields.ForeignKeyField("models.MenuItem", related_name="recipes")
    portion_size = fields.DecimalField(max_digits=8, decimal_places=3, default=Decimal("1"))
    notes = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "recipes"
        unique_together = (("restaurant", "menu_item"),)


class RecipeIngredient(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    recipe = fields.ForeignKeyField("models.Recipe", related_name="ingredients", on_delete=fields.CASCADE)
    inventory_item = fields.ForeignKeyField("models.InventoryItem", related_name="recipe_ingredients")
    quantity = fields.DecimalField(max_digits=12, decimal_places=3)  # Consumed per portion
    unit = fields.CharField(max_length=16)

    class Meta:
        table = "recipe_ingredients"
