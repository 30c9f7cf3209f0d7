"""Request dependencies."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request

from unitydesk.complaints.service import AppServices
from unitydesk.models import AuthUser


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def current_user(
    request: Request, services: AppServices = Depends(get_services)
) -> Optional[AuthUser]:
    """Signed-in user, or None for anonymous requests."""
    token = bearer_token(request)
    if token is None:
        return None
    return await services.auth.get_user(token)


async def require_user(user: Optional[AuthUser] = Depends(current_user)) -> AuthUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def require_officer(user: AuthUser = Depends(require_user)) -> AuthUser:
    if not user.is_officer:
        raise HTTPException(status_code=403, detail="Officer access required")
    return user
