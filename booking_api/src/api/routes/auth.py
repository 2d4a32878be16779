from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordRequestForm

from src.api.responses import envelope
from src.application.features.auth import (
    ChangePassword,
    GetCurrentUser,
    GetUsersList,
    Login,
    RefreshToken,
    Register,
    RevokeRefreshToken,
)
from src.application.mediator import Mediator
from src.application.results import PaginatedList, Result
from src.core.context import RequestContext
from src.core.deps import get_current_context, get_mediator, get_request_context, require_roles
from src.db.models.security import UserRole
from src.schemas.auth import TokenPair, UserRead

router = APIRouter(prefix="/auth", tags=["Auth"])


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=Result[TokenPair],
    summary="Login",
    description="Authenticate with email and password and receive an access token and a refresh token.",
)
async def login(
    payload: Login,
    ctx: RequestContext = Depends(get_request_context),
    mediator: Mediator = Depends(get_mediator),
):
    """Authenticate user and issue tokens."""
    return envelope(await mediator.send(payload, ctx))


# PUBLIC_INTERFACE
@router.post(
    "/token",
    response_model=TokenPair,
    summary="Login (OAuth2 form)",
    description="OAuth2 password form login used by the interactive docs. Username is the email.",
)
async def login_form(
    form_data: OAuth2PasswordRequestForm = Depends(),
    ctx: RequestContext = Depends(get_request_context),
    mediator: Mediator = Depends(get_mediator),
) -> TokenPair:
    """Authenticate with a form body and return the bare token pair."""
    result = await mediator.send(Login(email=form_data.username, password=form_data.password), ctx)
    if not result.succeeded:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.errors[0] if result.errors else "Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.data


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=Result[TokenPair],
    status_code=status.HTTP_201_CREATED,
    summary="Register user",
    description=(
        "Create a user account. When the request resolves a business (X-Tenant-ID header or subdomain), "
        "the user joins it as a customer; other roles are refused there."
    ),
)
async def register(
    payload: Register,
    ctx: RequestContext = Depends(get_request_context),
    mediator: Mediator = Depends(get_mediator),
):
    """Register a new user."""
    request = payload.model_copy(update={"tenant_id": ctx.tenant_id})
    return envelope(await mediator.send(request, ctx), status.HTTP_201_CREATED)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=Result[TokenPair],
    summary="Refresh tokens",
    description="Exchange a refresh token for a new token pair. The refresh token is rotated.",
)
async def refresh(
    payload: RefreshToken,
    ctx: RequestContext = Depends(get_request_context),
    mediator: Mediator = Depends(get_mediator),
):
    """Validate refresh token and issue a new token pair."""
    return envelope(await mediator.send(payload, ctx))


# PUBLIC_INTERFACE
@router.post(
    "/revoke",
    response_model=Result[None],
    summary="Revoke refresh token",
    description="Invalidate the caller's stored refresh token (logout).",
)
async def revoke(
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(RevokeRefreshToken(user_id=ctx.user_id), ctx))


# PUBLIC_INTERFACE
@router.post(
    "/change-password",
    response_model=Result[None],
    summary="Change password",
    description="Change the caller's password. Other sessions must log in again.",
)
async def change_password(
    payload: ChangePassword,
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    request = payload.model_copy(update={"user_id": ctx.user_id})
    return envelope(await mediator.send(request, ctx))


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=Result[UserRead],
    summary="Read current user",
    description="Return the current authenticated user.",
)
async def read_current_user(
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    """Return current user profile."""
    return envelope(await mediator.send(GetCurrentUser(user_id=ctx.user_id), ctx))


# PUBLIC_INTERFACE
@router.get(
    "/users",
    response_model=Result[PaginatedList[UserRead]],
    summary="List users",
    description="List users of the caller's business. Requires the Admin role.",
)
async def list_users(
    page_number: int = Query(1),
    page_size: int = Query(10),
    search_term: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    ctx: RequestContext = Depends(require_roles(UserRole.ADMIN.value)),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetUsersList(page_number=page_number, page_size=page_size, search_term=search_term, role=role)
    return envelope(await mediator.send(query, ctx))
