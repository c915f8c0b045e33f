"""
Auth endpoints for API v1.

Registration and login both return a signed Bearer token together
with the public user record.  ``/me`` echoes the authenticated user.
"""

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status

from calc_chain_api.app.core.security import get_current_user
from calc_chain_api.app.schemas.user import AuthResponse, UserCredentials, UserRead
from calc_chain_api.app.services.user_service import UserService, get_user_service

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserCredentials,
    service: UserService = Depends(get_user_service),
) -> AuthResponse:
    """Create an account and return a token.

    Usernames need at least 3 characters and passwords at least 6
    (HTTP 400).  A taken username yields HTTP 409.
    """
    token, user = service.register(payload.username, payload.password)
    return AuthResponse(token=token, user=user)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: UserCredentials,
    service: UserService = Depends(get_user_service),
) -> AuthResponse:
    """Exchange a username and password for a token (HTTP 401 on failure)."""
    token, user = service.login(payload.username, payload.password)
    return AuthResponse(token=token, user=user)


@router.get("/me", response_model=UserRead)
async def read_me(
    current_user: Dict[str, str] = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> UserRead:
    """Return the user the token was issued to."""
    user = service.get_by_id(current_user["userId"])
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
