"""
auth/dependencies.py -- FastAPI Depends() resolvers for riders and captains.

Token transport, in priority order:
  1. Cookie "token" -- set by the login routes.
  2. Authorization: Bearer <token> header -- mobile clients.

Both resolvers defer to AuthService.resolve(), which enforces the check
order (missing -> revoked -> invalid -> not found). On success the principal
is attached to request.state and returned to the route.

Layer rule: may import from fastapi (Request) because this module is part of
the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import Principal, PrincipalKind
from auth.service import AuthService
from auth.tokens import extract_token


async def _resolve(request: Request, kind: PrincipalKind) -> Principal:
    service: AuthService = request.app.state.auth_service
    principal = await service.resolve(extract_token(request), kind)
    request.state.principal = principal
    setattr(request.state, kind.value, principal)
    return principal


async def get_current_rider(request: Request) -> Principal:
    """Require an authenticated rider. Sets request.state.user.

    Use as a FastAPI dependency:
        @router.get("/users/profile")
        async def route(user: Principal = Depends(get_current_rider)): ...
    """
    return await _resolve(request, PrincipalKind.RIDER)


async def get_current_captain(request: Request) -> Principal:
    """Require an authenticated captain. Sets request.state.captain."""
    return await _resolve(request, PrincipalKind.DRIVER)
