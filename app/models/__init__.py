# app/models/__init__.py
from .restaurant import Restaurant, OrderSequence
from .menu import MenuCategory, MenuItem
from .table import Table, TableStatus, Reservation, ReservationStatus
from .order import Order, OrderItem, OrderStatus, PaymentStatus
from .payment import Payment, PaymentMethod
from .inventory import InventoryItem, InventoryMovement, MovementType
from .recipe import Recipe, RecipeIngredient
from .staff import StaffMember, Shift, ShiftStatus, ClockEntry
from .customer import Customer, LoyaltyProgram, LoyaltyTransaction, LoyaltyType
from .outbox import OutboxEvent
from .processed_event import ProcessedEvent

# Export all models
__all__ = [
    "Restaurant",
    "OrderSequence",
    "MenuCategory",
    "MenuItem",
    "Table",
    "TableStatus",
    "Reservation",
    "ReservationStatus",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Payment",
    "PaymentMethod",
    "InventoryItem",
    "InventoryMovement",
    "MovementType",
    "Recipe",
    "RecipeIngredient",
    "StaffMember",
    "Shift",
    "ShiftStatus",
    "ClockEntry",
    "Customer",
    "LoyaltyProgram",
    "LoyaltyTransaction",
    "LoyaltyType",
    "OutboxEvent",
    "ProcessedEvent",
]
