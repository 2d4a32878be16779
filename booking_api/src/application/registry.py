from __future__ import annotations

from src.application.features import (
    admin,
    appointments,
    auth,
    customers,
    employees,
    services,
    settings,
    tenants,
)
from src.application.mediator import HandlerRegistry

FEATURES = (auth, tenants, customers, services, employees, appointments, settings, admin)


# PUBLIC_INTERFACE
def build_registry() -> HandlerRegistry:
    """Register the handlers and validators of every feature module."""
    registry = HandlerRegistry()
    for feature in FEATURES:
        registry.register_feature(feature.HANDLERS, getattr(feature, "VALIDATORS", None))
    return registry
