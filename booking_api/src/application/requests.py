"""
Base classes for commands and queries and the capabilities the pipeline reacts to.

A request opts into pipeline behavior by inheriting a capability:

- TenantScoped: the tenant id is stamped from the caller's RequestContext.
- Cacheable: the result is served from / stored in the cache under `cache_key`.
- CacheInvalidating: after a successful run, `cache_key_to_invalidate` and every
  key matching `cache_pattern_to_invalidate` are removed.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Any, ClassVar, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Naive datetimes are taken as UTC; aware ones are converted.
UTCDatetime = Annotated[datetime, AfterValidator(_as_utc)]

# Text holding more than whitespace; surrounding whitespace is dropped.
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

# Calendar colors: #RGB or #RRGGBB.
HexColor = Annotated[str, StringConstraints(pattern=r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")]


class Request(BaseModel):
    """Base class for every command and query."""
    model_config = ConfigDict(extra="ignore")


class Command(Request):
    """Request that changes state."""


class Query(Request):
    """Request that only reads state."""


class TenantScoped(BaseModel):
    """Capability: the pipeline overwrites tenant_id with the caller's tenant."""
    tenant_id: Optional[UUID] = Field(
        None, description="Set by the server from the caller's tenant; client values are ignored."
    )


class Cacheable(BaseModel):
    """
    Capability: read-through caching of the handler result.

    Subclasses build `cache_key` from their own filter/sort/page fields and set
    `result_type` to the Result model used to deserialize cached values.
    """
    bypass_cache: bool = Field(False, description="Skip the cache lookup for this call")

    cache_expiration: ClassVar[Optional[timedelta]] = None
    result_type: ClassVar[Any]

    @property
    def cache_key(self) -> str:
        raise NotImplementedError


class CacheInvalidating(BaseModel):
    """
    Capability: purge cache entries after a successful run.

    Patterns are plain strings; several alternatives may be joined with '|'.
    """

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return None

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return None


# PUBLIC_INTERFACE
def key_part(value: Any) -> str:
    """Render a filter value for use inside a cache key ('' for None)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.strftime("%Y%m%d%H%M")
    if isinstance(value, date):
        return value.strftime("%Y%m%d")
    return str(value).lower()


class PagedQuery(Query):
    """Listing query with paging and sorting."""
    page_number: int = Field(1, ge=1, description="1-based page number")
    page_size: int = Field(10, ge=1, le=100, description="Items per page (max 100)")
    sort_by: Optional[str] = Field(None, description="Column to sort by")
    sort_ascending: bool = Field(True, description="Sort direction")
