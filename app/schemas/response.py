from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
import uuid


def _rid():
    return uuid.uuid4().hex


class SuccessResponse(BaseModel):
    """Envelope for every successful API answer: data, success, and request_id."""
    success: Optional[bool] = Field(default=True)
    request_id: str = Field(default_factory=_rid)
    data: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Envelope written by the exception handlers (documented on every router)."""
    success: bool = False
    error: str
    code: str
    request_id: str
    details: Optional[Any] = None


# Shared OpenAPI documentation for routers that raise AppError subclasses
ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Business rule violated"},
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse, "description": "Forbidden or inactive tenant"},
    404: {"model": ErrorResponse, "description": "Entity not found"},
    409: {"model": ErrorResponse, "description": "Conflict"},
}


def ok(data: Any = None) -> SuccessResponse:
    """Wraps pydantic models (JSON mode) or plain data in the success envelope."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [d.model_dump(mode="json") if isinstance(d, BaseModel) else d for d in data]
    return SuccessResponse(data=data)
