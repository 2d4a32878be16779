from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.behaviors import default_behaviors
from src.application.cache import CacheService, create_cache_service
from src.application.mediator import HandlerRegistry, Mediator
from src.application.registry import build_registry
from src.core.context import RequestContext
from src.core.logging import tenant_id_var, user_id_var
from src.core.security import decode_token
from src.core.settings import get_app_settings
from src.db.session import get_async_session
from src.repositories.tenants import TenantRepository

logger = logging.getLogger(__name__)

# OAuth2 bearer (used by docs); the form login endpoint path is referenced here.
# auto_error is off because anonymous callers are allowed on public endpoints.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)

# Host labels that never name a tenant.
_RESERVED_SUBDOMAINS = {"www", "api", "app", "localhost"}

_REGISTRY: HandlerRegistry | None = None
_CACHE: CacheService | None = None


# PUBLIC_INTERFACE
def get_registry() -> HandlerRegistry:
    """Return the process-wide handler registry, built on first use."""
    global _REGISTRY
    if _REGISTRY is None:
        _REGISTRY = build_registry()
    return _REGISTRY


# PUBLIC_INTERFACE
def get_cache() -> CacheService:
    """Return the process-wide cache backend selected by CACHE_BACKEND."""
    global _CACHE
    if _CACHE is None:
        _CACHE = create_cache_service(get_app_settings())
    return _CACHE


# PUBLIC_INTERFACE
async def close_cache() -> None:
    """Release the cache backend (application shutdown)."""
    global _CACHE
    if _CACHE is not None:
        await _CACHE.close()
        _CACHE = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _parse_tenant_header(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header must be a valid UUID string.",
        )


def subdomain_from_host(host: Optional[str]) -> Optional[str]:
    """
    Extract the tenant label from a Host header such as 'acme.booking.example.com:8000'.

    Returns None for bare domains, IP addresses and reserved labels.
    """
    if not host:
        return None
    hostname = host.split(":", 1)[0].strip().lower()
    labels = hostname.split(".")
    if len(labels) < 3 or all(label.isdigit() for label in labels):
        return None
    if labels[0] in _RESERVED_SUBDOMAINS:
        return None
    return labels[0]


def _decode_claims(token: str) -> Dict[str, Any]:
    try:
        claims = decode_token(token)
    except JWTError:
        raise _unauthorized("Invalid token")
    if claims.get("type") != "access" or not claims.get("sub"):
        raise _unauthorized("Invalid token")
    return claims


# PUBLIC_INTERFACE
async def get_request_context(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    x_tenant_id: Optional[str] = Header(default=None, alias="X-Tenant-ID"),
    session: AsyncSession = Depends(get_async_session),
) -> RequestContext:
    """
    Resolve the caller's identity and tenant.

    An authenticated caller's tenant is the token's tenant_id claim and nothing
    else; an X-Tenant-ID header naming any other tenant (or any tenant at all
    when the token has none) is rejected with 403. Anonymous callers fall back
    to the X-Tenant-ID header, then the subdomain of the Host header.
    """
    claims: Dict[str, Any] = _decode_claims(token) if token else {}
    header_tenant = _parse_tenant_header(x_tenant_id) if x_tenant_id else None

    tenant_id = None
    if claims:
        if claims.get("tenant_id"):
            try:
                tenant_id = UUID(str(claims["tenant_id"]))
            except ValueError:
                raise _unauthorized("Invalid token")
        if header_tenant is not None and header_tenant != tenant_id:
            logger.warning("Rejected X-Tenant-ID %s for user %s", header_tenant, claims.get("sub"))
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tenant mismatch")
    else:
        tenant_id = header_tenant
    if tenant_id is None and not claims:
        subdomain = subdomain_from_host(request.headers.get("host"))
        if subdomain:
            tenant = await TenantRepository(session).get_by_subdomain(subdomain)
            if tenant is not None and tenant.is_active:
                tenant_id = tenant.id

    user_id = None
    if claims:
        try:
            user_id = UUID(str(claims["sub"]))
        except ValueError:
            raise _unauthorized("Invalid token")

    if tenant_id is not None:
        tenant_id_var.set(str(tenant_id))
        request.state.tenant_id = str(tenant_id)
    if user_id is not None:
        user_id_var.set(str(user_id))

    return RequestContext(
        tenant_id=tenant_id,
        user_id=user_id,
        email=claims.get("email"),
        roles=tuple(claims.get("roles") or ()),
        correlation_id=getattr(request.state, "correlation_id", None),
    )


# PUBLIC_INTERFACE
async def get_current_context(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    """Require an authenticated caller."""
    if not ctx.is_authenticated:
        raise _unauthorized("Not authenticated")
    return ctx


# PUBLIC_INTERFACE
def require_roles(*required: str):
    """
    Create a dependency that requires the current user to hold one of the given roles.

    Returns the caller's RequestContext so routes can depend on it directly.
    """

    async def _dep(ctx: RequestContext = Depends(get_current_context)) -> RequestContext:
        if not ctx.has_role(*required):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return ctx

    return _dep


# PUBLIC_INTERFACE
async def get_mediator(
    session: AsyncSession = Depends(get_async_session),
    cache: CacheService = Depends(get_cache),
    registry: HandlerRegistry = Depends(get_registry),
) -> Mediator:
    """Mediator bound to this request's session and the shared cache."""
    settings = get_app_settings()
    return Mediator(session, cache, registry, default_behaviors(registry, cache, settings), settings)
