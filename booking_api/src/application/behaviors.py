"""
Pipeline behaviors wrapped around every handler.

Each behavior is an async callable `(request, ctx, call_next)`. The default
order is validation, tenant stamping, logging, performance, cache read, cache
invalidation, then the handler.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, List, Optional

from src.application.cache import CacheService, cache_namespace, tenant_cache_key
from src.application.mediator import Behavior, HandlerRegistry, NextHandler
from src.application.requests import Cacheable, CacheInvalidating, Request, TenantScoped
from src.application.validation import run_validators
from src.core.context import RequestContext
from src.core.errors import AppError, UnauthenticatedError
from src.core.settings import AppSettings

logger = logging.getLogger(__name__)


def _name(request: Request) -> str:
    return type(request).__name__


def _tenant_of(request: Request) -> Optional[Any]:
    return request.tenant_id if isinstance(request, TenantScoped) else None


def _succeeded(result: Any) -> bool:
    return bool(getattr(result, "succeeded", False))


class ValidationBehavior:
    """Checks field constraints and runs the registered validators; any failure aborts before the handler."""

    def __init__(self, registry: HandlerRegistry) -> None:
        self.registry = registry

    async def __call__(self, request: Request, ctx: RequestContext, call_next: NextHandler) -> Any:
        run_validators(request, self.registry.validators_for(type(request)))
        return await call_next()


class TenantStampBehavior:
    """Overwrites tenant_id on tenant-scoped requests with the caller's tenant."""

    async def __call__(self, request: Request, ctx: RequestContext, call_next: NextHandler) -> Any:
        if isinstance(request, TenantScoped):
            if ctx.tenant_id is None:
                raise UnauthenticatedError("Tenant context could not be resolved.")
            request.tenant_id = ctx.tenant_id
        return await call_next()


class LoggingBehavior:
    async def __call__(self, request: Request, ctx: RequestContext, call_next: NextHandler) -> Any:
        name = _name(request)
        logger.info("Handling %s for user %s in tenant %s", name, ctx.actor, ctx.tenant_id or "-")
        try:
            result = await call_next()
        except AppError as exc:
            logger.warning("%s failed: %s", name, exc.message)
            raise
        except Exception:
            logger.exception("Unhandled error while handling %s", name)
            raise
        logger.info("Handled %s", name)
        return result


class PerformanceBehavior:
    """Warns about requests slower than the configured threshold."""

    def __init__(self, threshold_ms: int) -> None:
        self.threshold_ms = threshold_ms

    async def __call__(self, request: Request, ctx: RequestContext, call_next: NextHandler) -> Any:
        started = time.perf_counter()
        try:
            return await call_next()
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            if elapsed_ms > self.threshold_ms:
                logger.warning(
                    "Long running request: %s (%.0f ms) user=%s tenant=%s",
                    _name(request),
                    elapsed_ms,
                    ctx.actor,
                    ctx.tenant_id or "-",
                )


class CachingBehavior:
    """Read-through cache for Cacheable requests; stores successful results only."""

    def __init__(self, cache: CacheService, default_expiration: timedelta) -> None:
        self.cache = cache
        self.default_expiration = default_expiration

    async def __call__(self, request: Request, ctx: RequestContext, call_next: NextHandler) -> Any:
        if not isinstance(request, Cacheable):
            return await call_next()

        key = tenant_cache_key(_tenant_of(request), request.cache_key)
        if not request.bypass_cache:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s", key)
                return request.result_type.model_validate_json(cached)
            logger.debug("Cache miss for %s", key)

        result = await call_next()
        if _succeeded(result):
            expiration = request.cache_expiration or self.default_expiration
            await self.cache.set(key, result.model_dump_json(), expiration)
        return result


class CacheInvalidationBehavior:
    """Removes stale cache entries after a successful write."""

    def __init__(self, cache: CacheService) -> None:
        self.cache = cache

    async def __call__(self, request: Request, ctx: RequestContext, call_next: NextHandler) -> Any:
        result = await call_next()
        if not isinstance(request, CacheInvalidating) or not _succeeded(result):
            return result

        tenant_id = _tenant_of(request)
        key = request.cache_key_to_invalidate
        if key:
            await self.cache.remove(tenant_cache_key(tenant_id, key))
        pattern = request.cache_pattern_to_invalidate
        if pattern:
            removed = await self.cache.remove_by_pattern(pattern, prefix=cache_namespace(tenant_id))
            logger.debug("Invalidated %d cache entries for pattern %s", removed, pattern)
        return result


# PUBLIC_INTERFACE
def default_behaviors(
    registry: HandlerRegistry, cache: CacheService, settings: AppSettings
) -> List[Behavior]:
    """The standard pipeline, outermost first."""
    return [
        ValidationBehavior(registry),
        TenantStampBehavior(),
        LoggingBehavior(),
        PerformanceBehavior(settings.SLOW_REQUEST_THRESHOLD_MS),
        CachingBehavior(cache, timedelta(minutes=settings.CACHE_DEFAULT_EXPIRATION_MINUTES)),
        CacheInvalidationBehavior(cache),
    ]
