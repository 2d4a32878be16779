"""
Authentication and user account use cases.

Access tokens are JWTs carrying the user id, email, roles and tenant id.
Refresh tokens are opaque, stored on the user row with an expiry and rotated
on every refresh.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import EmailStr, Field

from src.application.mediator import RequestHandler
from src.application.requests import Command, PagedQuery, Query, RequiredText, TenantScoped
from src.application.results import PaginatedList, Result
from src.application.validation import Failure, Rules
from src.core.errors import NotFoundError, UnauthenticatedError
from src.core.security import create_access_token, generate_refresh_token, get_password_hash, verify_password
from src.core.settings import AppSettings
from src.db.base import utcnow
from src.db.models.customer import Customer
from src.db.models.security import User, UserRole
from src.repositories.security import UserRepository
from src.repositories.tenants import TenantRepository
from src.schemas.auth import TokenPair, UserRead

logger = logging.getLogger(__name__)

# PUBLIC_INTERFACE
def issue_tokens(user: User, settings: AppSettings) -> TokenPair:
    """Create an access token and rotate the user's refresh token (caller commits)."""
    expires_at = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access = create_access_token(
        str(user.id),
        str(user.tenant_id) if user.tenant_id else None,
        roles=user.roles,
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        extra={"email": user.email},
    )
    refresh, refresh_expiry = generate_refresh_token(settings.REFRESH_TOKEN_EXPIRE_DAYS)
    user.refresh_token = refresh
    user.refresh_token_expiry_time = refresh_expiry
    return TokenPair(
        access_token=access,
        refresh_token=refresh,
        expires_at=expires_at,
        user=UserRead.model_validate(user),
    )


class Login(Command):
    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Account password")


class Register(Command):
    email: EmailStr = Field(..., description="Account email, globally unique")
    password: str = Field(..., description="At least 8 characters with upper, lower case and a digit")
    confirm_password: str = Field(..., description="Must equal password")
    first_name: RequiredText = Field(..., max_length=100)
    last_name: RequiredText = Field(..., max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)
    role: Literal["Customer", "Employee", "Admin"] = Field("Customer", description="Customer | Employee | Admin")
    tenant_id: Optional[UUID] = Field(None, description="Business to join; set from the request's tenant")


class RefreshToken(Command):
    refresh_token: str = Field(..., description="Refresh token from login")


class RevokeRefreshToken(Command):
    user_id: Optional[UUID] = Field(None, description="Set by the server from the caller")


class ChangePassword(Command):
    user_id: Optional[UUID] = Field(None, description="Set by the server from the caller")
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(...)
    confirm_new_password: str = Field(...)


class GetCurrentUser(Query):
    user_id: Optional[UUID] = None


class GetUsersList(PagedQuery, TenantScoped):
    search_term: Optional[str] = Field(None, description="Matches email or name")
    role: Optional[str] = Field(None)


def _password_rules(rules: Rules, field: str, password: str, require_symbol: bool = False) -> None:
    rules.required(field, password, "Password is required")
    if not password:
        return
    rules.check(len(password) >= 8, field, "Password must be at least 8 characters")
    rules.check(bool(re.search("[A-Z]", password)), field, "Password must contain at least one uppercase letter")
    rules.check(bool(re.search("[a-z]", password)), field, "Password must contain at least one lowercase letter")
    rules.check(bool(re.search("[0-9]", password)), field, "Password must contain at least one digit")
    if require_symbol:
        rules.check(
            bool(re.search("[^a-zA-Z0-9]", password)),
            field,
            "Password must contain at least one special character",
        )


def validate_register(request: Register) -> List[Failure]:
    rules = Rules()
    _password_rules(rules, "password", request.password)
    rules.check(request.confirm_password == request.password, "confirm_password", "Passwords do not match")
    return rules.failures


def validate_change_password(request: ChangePassword) -> List[Failure]:
    rules = Rules()
    _password_rules(rules, "new_password", request.new_password, require_symbol=True)
    rules.check(
        request.confirm_new_password == request.new_password, "confirm_new_password", "Passwords do not match"
    )
    return rules.failures


class LoginHandler(RequestHandler):
    async def handle(self, request: Login) -> Result[TokenPair]:
        repo = UserRepository(self.session)
        user = await repo.get_user_by_email(request.email.strip())
        if user is None or not verify_password(request.password, user.hashed_password):
            logger.info("Failed login for %s", request.email)
            return Result[TokenPair].failure("Invalid email or password")
        if not user.is_active:
            return Result[TokenPair].failure("User account is disabled")

        user.last_login_at = utcnow()
        tokens = issue_tokens(user, self.settings)
        await repo.commit()
        return Result[TokenPair].success(tokens, message="Login successful")


class RegisterHandler(RequestHandler):
    """Create the identity; joining a known business is allowed for customers only."""

    async def handle(self, request: Register) -> Result[TokenPair]:
        repo = UserRepository(self.session)
        email = request.email.strip()
        if await repo.get_user_by_email(email) is not None:
            return Result[TokenPair].failure("Email is already registered.")
        if request.tenant_id is not None:
            if await TenantRepository(self.session).get_by_id(request.tenant_id) is None:
                return Result[TokenPair].failure("Business not found")
            if request.role != UserRole.CUSTOMER.value:
                logger.warning("Refused %s self-registration into tenant %s", request.role, request.tenant_id)
                return Result[TokenPair].failure("Only customers can register with a business")

        user = User(
            email=email,
            first_name=request.first_name.strip(),
            last_name=request.last_name.strip(),
            hashed_password=get_password_hash(request.password),
            role=request.role,
            tenant_id=request.tenant_id,
            is_active=True,
        )
        await repo.add(user)
        await repo.flush()

        if request.tenant_id is not None:
            await repo.add(
                Customer(
                    tenant_id=request.tenant_id,
                    user_id=user.id,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    email=email,
                    phone_number=request.phone_number,
                )
            )

        tokens = issue_tokens(user, self.settings)
        await repo.commit()
        logger.info("User %s registered with role %s", email, request.role)
        return Result[TokenPair].success(tokens, message="Registration successful")


class RefreshTokenHandler(RequestHandler):
    async def handle(self, request: RefreshToken) -> Result[TokenPair]:
        repo = UserRepository(self.session)
        user = await repo.get_user_by_refresh_token(request.refresh_token)
        if user is None or not user.is_active:
            return Result[TokenPair].failure("Invalid refresh token")
        if user.refresh_token_expiry_time is None or user.refresh_token_expiry_time <= utcnow():
            return Result[TokenPair].failure("Refresh token expired")

        tokens = issue_tokens(user, self.settings)
        await repo.commit()
        return Result[TokenPair].success(tokens)


class RevokeRefreshTokenHandler(RequestHandler):
    async def handle(self, request: RevokeRefreshToken) -> Result[None]:
        if request.user_id is None:
            raise UnauthenticatedError()
        repo = UserRepository(self.session)
        user = self.ensure_found(await repo.get_user_by_id(request.user_id), "User", request.user_id)
        user.refresh_token = None
        user.refresh_token_expiry_time = None
        await repo.commit()
        return Result[None].success(message="Refresh token revoked")


class ChangePasswordHandler(RequestHandler):
    async def handle(self, request: ChangePassword) -> Result[None]:
        if request.user_id is None:
            raise UnauthenticatedError()
        repo = UserRepository(self.session)
        user = self.ensure_found(await repo.get_user_by_id(request.user_id), "User", request.user_id)
        if not verify_password(request.current_password, user.hashed_password):
            return Result[None].failure("Current password is incorrect")
        user.hashed_password = get_password_hash(request.new_password)
        # Force re-login on other devices.
        user.refresh_token = None
        user.refresh_token_expiry_time = None
        await repo.commit()
        return Result[None].success(message="Password changed successfully")


class GetCurrentUserHandler(RequestHandler):
    async def handle(self, request: GetCurrentUser) -> Result[UserRead]:
        if request.user_id is None:
            raise UnauthenticatedError()
        user = await UserRepository(self.session).get_user_by_id(request.user_id)
        if user is None:
            raise NotFoundError("User", request.user_id)
        return Result[UserRead].success(UserRead.model_validate(user))


class GetUsersListHandler(RequestHandler):
    async def handle(self, request: GetUsersList) -> Result[PaginatedList[UserRead]]:
        items, total = await UserRepository(self.session).list_users(
            request.tenant_id,
            search=request.search_term,
            role=request.role,
            page=request.page_number,
            page_size=request.page_size,
        )
        page = PaginatedList[UserRead].create(
            [UserRead.model_validate(u) for u in items], total, request.page_number, request.page_size
        )
        return Result[PaginatedList[UserRead]].success(page)


HANDLERS = {
    Login: LoginHandler,
    Register: RegisterHandler,
    RefreshToken: RefreshTokenHandler,
    RevokeRefreshToken: RevokeRefreshTokenHandler,
    ChangePassword: ChangePasswordHandler,
    GetCurrentUser: GetCurrentUserHandler,
    GetUsersList: GetUsersListHandler,
}

VALIDATORS = {
    Register: [validate_register],
    ChangePassword: [validate_change_password],
}
