"""Operational errors raised by the service layer.

Every business-rule failure is an ``AppError`` carrying the HTTP status the API
should answer with. The exception handlers turn them into the error envelope.
"""


class AppError(Exception):
    status_code = 500
    code = "app_error"

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class ItemUnavailable(AppError):
    status_code = 400
    code = "item_unavailable"


class OrderClosed(AppError):
    status_code = 400
    code = "order_closed"


class OrderAlreadyCompleted(AppError):
    status_code = 400
    code = "order_already_completed"


class OrderCancelled(AppError):
    status_code = 400
    code = "order_cancelled"


class OverPayment(AppError):
    status_code = 400
    code = "over_payment"


class RefundExceedsPayment(AppError):
    status_code = 400
    code = "refund_exceeds_payment"


class InvalidSplit(AppError):
    status_code = 400
    code = "invalid_split"


class InsufficientStock(AppError):
    status_code = 400
    code = "insufficient_stock"


class DuplicateResource(AppError):
    status_code = 400
    code = "duplicate_resource"


class IllegalTransition(AppError):
    status_code = 409
    code = "illegal_transition"


class TableConflict(AppError):
    status_code = 409
    code = "table_conflict"


class AuthenticationRequired(AppError):
    status_code = 401
    code = "authentication_required"


class PermissionDenied(AppError):
    status_code = 403
    code = "permission_denied"


class TenantInactive(AppError):
    status_code = 403
    code = "tenant_inactive"
