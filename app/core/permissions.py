"""Role based access control.

Each role maps to the set of permissions it holds. Routes declare the single
permission they need and ``require_permission`` evaluates it once per request.
"""
from enum import Enum
from typing import Dict, FrozenSet


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    WAITER = "WAITER"
    CHEF = "CHEF"
    CASHIER = "CASHIER"


class Permission(str, Enum):
    VIEW = "view"
    ORDER_CREATE = "order:create"
    ORDER_UPDATE_STATUS = "order:update_status"
    ORDER_ITEM_STATUS = "order:item_status"
    ORDER_CANCEL = "order:cancel"
    PAYMENT_PROCESS = "payment:process"
    PAYMENT_REFUND = "payment:refund"
    PAYMENT_REPORT = "payment:report"
    MENU_MANAGE = "menu:manage"
    MENU_AVAILABILITY = "menu:availability"
    INVENTORY_MANAGE = "inventory:manage"
    RECIPE_MANAGE = "recipe:manage"
    RECIPE_DELETE = "recipe:delete"
    TABLE_MANAGE = "table:manage"
    TABLE_STATUS = "table:status"
    RESERVATION_CREATE = "reservation:create"
    RESERVATION_STATUS = "reservation:status"
    RESERVATION_CANCEL = "reservation:cancel"
    REPORT_VIEW = "report:view"
    QR_GENERATE = "qr:generate"
    STAFF_MANAGE = "staff:manage"
    STAFF_TOGGLE = "staff:toggle"
    CUSTOMER_CREATE = "customer:create"
    CUSTOMER_UPDATE = "customer:update"
    LOYALTY_MANAGE = "loyalty:manage"


_ALL = frozenset(Permission)
# Activating or deactivating staff accounts stays with admins
_MANAGEMENT = _ALL - {Permission.STAFF_TOGGLE}

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.SUPER_ADMIN: _ALL,
    Role.ADMIN: _ALL,
    Role.MANAGER: _MANAGEMENT,
    Role.WAITER: frozenset({
        Permission.VIEW,
        Permission.ORDER_CREATE,
        Permission.ORDER_UPDATE_STATUS,
        Permission.TABLE_STATUS,
        Permission.RESERVATION_CREATE,
        Permission.RESERVATION_STATUS,
        Permission.CUSTOMER_CREATE,
    }),
    Role.CHEF: frozenset({
        Permission.VIEW,
        Permission.ORDER_UPDATE_STATUS,
        Permission.ORDER_ITEM_STATUS,
        Permission.MENU_AVAILABILITY,
        Permission.RECIPE_MANAGE,
    }),
    Role.CASHIER: frozenset({
        Permission.VIEW,
        Permission.PAYMENT_PROCESS,
        Permission.CUSTOMER_CREATE,
        Permission.LOYALTY_MANAGE,
    }),
}


def has_permission(role: Role, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())
