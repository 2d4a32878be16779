from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from src.api.responses import envelope
from src.application.features.settings import (
    GetBookingSettings,
    GetBusinessSettings,
    GetNotificationSettings,
    GetSettings,
    UpdateSettings,
)
from src.application.mediator import Mediator
from src.application.results import Result
from src.core.context import RequestContext
from src.core.deps import get_current_context, get_mediator, require_roles
from src.db.models.security import UserRole
from src.schemas.settings import (
    BookingSettings,
    BusinessSettings,
    NotificationSettings,
    SettingRead,
    SettingsGroup,
)

router = APIRouter(prefix="/settings", tags=["Settings"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Result[List[SettingsGroup]],
    summary="List settings",
    description="Settings of the caller's business grouped by category.",
)
async def list_settings(
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    include_system: bool = Query(True),
    bypass_cache: bool = Query(False),
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    query = GetSettings(
        category=category, is_active=is_active, include_system=include_system, bypass_cache=bypass_cache
    )
    return envelope(await mediator.send(query, ctx))


# PUBLIC_INTERFACE
@router.put(
    "",
    response_model=Result[List[SettingRead]],
    summary="Update settings",
    description="Upsert settings by key. System settings are read-only. Requires the Admin role.",
)
async def update_settings(
    payload: UpdateSettings,
    ctx: RequestContext = Depends(require_roles(UserRole.ADMIN.value)),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(payload, ctx))


# PUBLIC_INTERFACE
@router.get("/booking", response_model=Result[BookingSettings], summary="Booking settings")
async def booking_settings(
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetBookingSettings(), ctx))


# PUBLIC_INTERFACE
@router.get("/business", response_model=Result[BusinessSettings], summary="Business settings")
async def business_settings(
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetBusinessSettings(), ctx))


# PUBLIC_INTERFACE
@router.get("/notifications", response_model=Result[NotificationSettings], summary="Notification settings")
async def notification_settings(
    ctx: RequestContext = Depends(get_current_context),
    mediator: Mediator = Depends(get_mediator),
):
    return envelope(await mediator.send(GetNotificationSettings(), ctx))
