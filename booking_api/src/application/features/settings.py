"""
Tenant settings: key/value rows grouped by category with typed views.

Values are stored as text; the typed views (booking, business, notifications)
fall back to defaults for keys a tenant has never set.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import timedelta
from typing import Dict, List, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.mediator import RequestHandler
from src.application.requests import (
    Cacheable,
    CacheInvalidating,
    Command,
    Query,
    TenantScoped,
    key_part,
)
from src.application.results import Result
from src.application.validation import Failure, Rules
from src.db.models.setting import Setting
from src.repositories.settings import SettingsRepository
from src.schemas.settings import (
    BookingSettings,
    BusinessSettings,
    NotificationSettings,
    SettingRead,
    SettingsGroup,
    SettingUpdateItem,
)

CACHE_DURATION = timedelta(minutes=30)

BOOKING = "Booking"
BUSINESS = "Business"
NOTIFICATIONS = "Notifications"

V = TypeVar("V", bound=BaseModel)


def _data_type(value: object) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    return "string"


def _as_text(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# PUBLIC_INTERFACE
def default_settings() -> List[Setting]:
    """Fresh (unsaved) rows for every known key with its default value."""
    rows: List[Setting] = []
    for category, model in ((BOOKING, BookingSettings), (BUSINESS, BusinessSettings), (NOTIFICATIONS, NotificationSettings)):
        for order, (key, value) in enumerate(model().model_dump().items()):
            rows.append(
                Setting(
                    key=key,
                    value=_as_text(value),
                    category=category,
                    data_type=_data_type(value),
                    is_active=True,
                    is_system_setting=False,
                    display_order=order,
                )
            )
    return rows


def _typed_view(model: Type[V], values: Dict[str, str]) -> V:
    """Build a typed settings view; unknown or unparsable values keep their default."""
    defaults = model()
    parsed = {}
    for name in model.model_fields:
        if name not in values:
            continue
        raw = values[name]
        default = getattr(defaults, name)
        if isinstance(default, bool):
            parsed[name] = raw.strip().lower() in ("true", "1", "yes", "on")
        elif isinstance(default, int):
            try:
                parsed[name] = int(raw)
            except ValueError:
                continue
        else:
            parsed[name] = raw
    return model(**parsed)


# PUBLIC_INTERFACE
async def load_booking_settings(session: AsyncSession, tenant_id: UUID) -> BookingSettings:
    """Booking rules of a tenant, used outside the settings queries (public booking)."""
    values = await SettingsRepository(session).get_settings_dictionary(tenant_id, BOOKING)
    return _typed_view(BookingSettings, values)


class UpdateSettings(Command, TenantScoped, CacheInvalidating):
    settings: List[SettingUpdateItem] = Field(default_factory=list, min_length=1)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return "settings_list|settings_"


class GetSettings(Query, TenantScoped, Cacheable):
    category: Optional[str] = Field(None)
    is_active: Optional[bool] = Field(None)
    include_system: bool = Field(True)

    cache_expiration = CACHE_DURATION
    result_type = Result[List[SettingsGroup]]

    @property
    def cache_key(self) -> str:
        return (
            f"settings_list_cat{key_part(self.category)}_ia{key_part(self.is_active)}"
            f"_is{key_part(self.include_system)}"
        )


class GetBookingSettings(Query, TenantScoped, Cacheable):
    cache_expiration = CACHE_DURATION
    result_type = Result[BookingSettings]

    @property
    def cache_key(self) -> str:
        return "settings_booking"


class GetBusinessSettings(Query, TenantScoped, Cacheable):
    cache_expiration = CACHE_DURATION
    result_type = Result[BusinessSettings]

    @property
    def cache_key(self) -> str:
        return "settings_business"


class GetNotificationSettings(Query, TenantScoped, Cacheable):
    cache_expiration = CACHE_DURATION
    result_type = Result[NotificationSettings]

    @property
    def cache_key(self) -> str:
        return "settings_notifications"


def validate_distinct_keys(request: UpdateSettings) -> List[Failure]:
    rules = Rules()
    keys = [item.key for item in request.settings]
    rules.check(len(keys) == len(set(keys)), "settings", "Each key may appear only once.")
    return rules.failures


class UpdateSettingsHandler(RequestHandler):
    """Upsert each key; system settings are read-only."""

    async def handle(self, request: UpdateSettings) -> Result[List[SettingRead]]:
        repo = SettingsRepository(self.session)
        existing = {item.key: await repo.get_by_key(request.tenant_id, item.key) for item in request.settings}
        for key, setting in existing.items():
            if setting is not None and setting.is_system_setting:
                return Result[List[SettingRead]].failure(f"Cannot modify system setting: {key}")

        updated: List[Setting] = []
        for item in request.settings:
            setting = existing[item.key]
            if setting is None:
                setting = Setting(
                    tenant_id=request.tenant_id,
                    key=item.key,
                    category=item.category or "General",
                    data_type=item.data_type or "string",
                    is_active=True,
                    is_system_setting=False,
                    display_order=0,
                )
                await repo.add(setting)
            setting.value = item.value
            if item.description is not None:
                setting.description = item.description
            if item.category:
                setting.category = item.category
            if item.data_type:
                setting.data_type = item.data_type
            updated.append(setting)
        await repo.commit()
        return Result[List[SettingRead]].success(
            [SettingRead.model_validate(s) for s in updated], message="Settings updated successfully"
        )


class GetSettingsHandler(RequestHandler):
    async def handle(self, request: GetSettings) -> Result[List[SettingsGroup]]:
        rows = await SettingsRepository(self.session).list_settings(
            request.tenant_id,
            category=request.category,
            is_active=request.is_active,
            include_system=request.include_system,
        )
        groups: "OrderedDict[str, List[SettingRead]]" = OrderedDict()
        for row in rows:
            groups.setdefault(row.category, []).append(SettingRead.model_validate(row))
        return Result[List[SettingsGroup]].success(
            [SettingsGroup(category=c, settings=items) for c, items in groups.items()]
        )


class GetBookingSettingsHandler(RequestHandler):
    async def handle(self, request: GetBookingSettings) -> Result[BookingSettings]:
        return Result[BookingSettings].success(await load_booking_settings(self.session, request.tenant_id))


class GetBusinessSettingsHandler(RequestHandler):
    async def handle(self, request: GetBusinessSettings) -> Result[BusinessSettings]:
        values = await SettingsRepository(self.session).get_settings_dictionary(request.tenant_id, BUSINESS)
        return Result[BusinessSettings].success(_typed_view(BusinessSettings, values))


class GetNotificationSettingsHandler(RequestHandler):
    async def handle(self, request: GetNotificationSettings) -> Result[NotificationSettings]:
        values = await SettingsRepository(self.session).get_settings_dictionary(
            request.tenant_id, NOTIFICATIONS
        )
        return Result[NotificationSettings].success(_typed_view(NotificationSettings, values))


HANDLERS = {
    UpdateSettings: UpdateSettingsHandler,
    GetSettings: GetSettingsHandler,
    GetBookingSettings: GetBookingSettingsHandler,
    GetBusinessSettings: GetBusinessSettingsHandler,
    GetNotificationSettings: GetNotificationSettingsHandler,
}

VALIDATORS = {
    UpdateSettings: [validate_distinct_keys],
}
