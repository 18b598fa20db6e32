"""Bearer token verification and tenant resolution.

Tokens are minted by the auth service. This module only decodes them, loads the
tenant the principal acts for and checks the route's permission.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import JWT_ALGORITHM, JWT_SECRET
from app.core.errors import AuthenticationRequired, NotFound, PermissionDenied, TenantInactive
from app.core.permissions import Permission, Role, has_permission
from app.models.restaurant import Restaurant

log = logging.getLogger("app.security")

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: Role
    restaurant_id: Optional[UUID]
    email: Optional[str] = None


@dataclass(frozen=True)
class TenantContext:
    principal: Principal
    restaurant: Restaurant

    @property
    def restaurant_id(self) -> UUID:
        return self.restaurant.id

    @property
    def user_id(self) -> str:
        return self.principal.user_id


def decode_token(token: str) -> Principal:
    """Validates the JWT signature and maps its claims onto a Principal."""
    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        log.info(f"Rejected bearer token: {e}")
        raise AuthenticationRequired("Invalid or expired token")

    try:
        role = Role(claims.get("role"))
        restaurant_id = claims.get("restaurantId")
        return Principal(
            user_id=str(claims["id"]),
            role=role,
            restaurant_id=UUID(restaurant_id) if restaurant_id else None,
            email=claims.get("email"),
        )
    except (KeyError, ValueError):
        raise AuthenticationRequired("Malformed token claims")


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired("Authentication required")
    return decode_token(credentials.credentials)


async def resolve_tenant(principal: Principal, requested_restaurant_id: Optional[str] = None) -> Restaurant:
    """
    Returns the active restaurant the principal operates on. Only a SUPER_ADMIN
    may act on a tenant other than the one embedded in its token.
    """
    restaurant_id = principal.restaurant_id
    if principal.role == Role.SUPER_ADMIN and requested_restaurant_id:
        try:
            restaurant_id = UUID(str(requested_restaurant_id))
        except ValueError:
            raise NotFound("Restaurant not found")

    if restaurant_id is None:
        raise AuthenticationRequired("Restaurant ID is required")

    restaurant = await Restaurant.get_or_none(id=restaurant_id)
    if not restaurant:
        raise NotFound("Restaurant not found")
    if not restaurant.is_active:
        raise TenantInactive("Restaurant account is inactive")
    return restaurant


def require_permission(permission: Permission):
    """Dependency factory: authenticates, resolves the tenant and checks the permission."""

    async def dependency(
        principal: Principal = Depends(get_current_principal),
        x_restaurant_id: Optional[str] = Header(default=None),
    ) -> TenantContext:
        if not has_permission(principal.role, permission):
            raise PermissionDenied("Insufficient permissions")
        restaurant = await resolve_tenant(principal, x_restaurant_id)
        return TenantContext(principal=principal, restaurant=restaurant)

    return dependency
