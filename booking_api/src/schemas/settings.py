from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class SettingRead(BaseModel):
    """One tenant setting."""
    key: str = Field(...)
    value: str = Field(...)
    category: str = Field(...)
    description: Optional[str] = Field(None)
    data_type: str = Field("string", description="string | int | bool | decimal")
    is_active: bool = Field(True)
    is_system_setting: bool = Field(False)
    display_order: int = Field(0)

    class Config:
        from_attributes = True


class SettingsGroup(BaseModel):
    """Settings of one category."""
    category: str = Field(...)
    settings: List[SettingRead] = Field(default_factory=list)


class SettingUpdateItem(BaseModel):
    """Upsert payload for one key."""
    key: str = Field(..., min_length=1, max_length=100, description="Setting key")
    value: str = Field(..., description="New value (stored as text)")
    category: Optional[str] = Field(None, description="Category for new keys")
    description: Optional[str] = Field(None)
    data_type: Optional[str] = Field(None)


class BookingSettings(BaseModel):
    """Typed view over the Booking category."""
    max_advance_booking_days: int = 30
    min_advance_booking_hours: int = 1
    max_cancellation_hours: int = 24
    require_customer_phone: bool = True
    require_customer_email: bool = True
    allow_online_booking: bool = True
    auto_confirm_bookings: bool = False
    default_appointment_duration: int = 60
    allow_back_to_back_bookings: bool = True
    buffer_time_between_appointments: int = 0


class BusinessSettings(BaseModel):
    """Typed view over the Business category."""
    business_name: str = ""
    business_description: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    website: str = ""
    address: str = ""
    timezone: str = "UTC"
    currency: str = "USD"
    language: str = "en"


class NotificationSettings(BaseModel):
    """Typed view over the Notifications category."""
    email_notifications_enabled: bool = True
    sms_notifications_enabled: bool = False
    send_booking_confirmation: bool = True
    send_booking_reminder: bool = True
    send_cancellation_notification: bool = True
    reminder_hours_before_appointment: int = 24
    notify_employee_on_new_booking: bool = True
    notify_admin_on_cancellation: bool = True
