"""
Database seeding utilities for a demo business.

Seeds:
- Demo tenant (subdomain "demo") with opening hours and default settings
- Admin user for the demo tenant
- Two services (Haircut, Beard Trim)
- One employee offering both services, working Monday to Friday 09:00-17:00

Seeding is idempotent: an existing "demo" tenant is left untouched.

Usage:
  python -m src.db.run_migrations upgrade head
  python -m src.db.seed
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import time
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.application.features.settings import default_settings
from src.core.security import get_password_hash
from src.db.models import (
    Employee,
    EmployeeWorkingHours,
    Service,
    Tenant,
    TenantWorkingHours,
    User,
    UserRole,
)
from src.db.session import acting_as, get_async_session
from src.repositories.security import UserRepository
from src.repositories.tenants import TenantRepository

logger = logging.getLogger(__name__)

DEMO_SUBDOMAIN = "demo"
DEMO_ADMIN_EMAIL = "admin@demo.example.com"
DEMO_ADMIN_PASSWORD = "ChangeMe123!"


# PUBLIC_INTERFACE
async def seed_all(session: Optional[AsyncSession] = None) -> uuid.UUID:
    """
    Seed the database with a demo business and return its tenant id.

    When no session is given a standalone one is opened with the configured engine.
    """
    if session is not None:
        return await _seed(session)
    async for own_session in get_async_session():
        return await _seed(own_session)
    raise RuntimeError("No database session available")


async def _seed(session: AsyncSession) -> uuid.UUID:
    async with acting_as(session, "seed"):
        existing = await TenantRepository(session).get_by_subdomain(DEMO_SUBDOMAIN)
        if existing is not None:
            logger.info("Demo tenant already present (%s); skipping seed.", existing.id)
            return existing.id

        tenant = await _seed_tenant(session)
        await _seed_admin(session, tenant.id)
        services = _seed_services(session, tenant.id)
        _seed_employee(session, tenant.id, services)
        await session.commit()
        logger.info("Seeded demo tenant %s", tenant.id)
        return tenant.id


async def _seed_tenant(session: AsyncSession) -> Tenant:
    tenant_id = uuid.uuid4()
    tenant = Tenant(
        id=tenant_id,
        tenant_id=tenant_id,
        name="Demo Barbershop",
        subdomain=DEMO_SUBDOMAIN,
        primary_color="#2c3e50",
        is_active=True,
        address="1 Main Street",
        city="Springfield",
        working_hours=[
            TenantWorkingHours(tenant_id=tenant_id, day_of_week=day, open_time=time(9), close_time=time(18))
            for day in range(6)
        ],
    )
    session.add(tenant)
    await session.flush()
    for setting in default_settings():
        setting.tenant_id = tenant_id
        session.add(setting)
    return tenant


async def _seed_admin(session: AsyncSession, tenant_id: uuid.UUID) -> None:
    if await UserRepository(session).get_user_by_email(DEMO_ADMIN_EMAIL) is not None:
        return
    session.add(
        User(
            tenant_id=tenant_id,
            email=DEMO_ADMIN_EMAIL,
            first_name="Demo",
            last_name="Admin",
            hashed_password=get_password_hash(DEMO_ADMIN_PASSWORD),
            role=UserRole.ADMIN.value,
            is_active=True,
            is_superadmin=True,
        )
    )


def _seed_services(session: AsyncSession, tenant_id: uuid.UUID) -> List[Service]:
    services = [
        Service(
            tenant_id=tenant_id,
            name="Haircut",
            description="Classic cut and style",
            price=Decimal("25.00"),
            duration_minutes=30,
            color="#3498db",
        ),
        Service(
            tenant_id=tenant_id,
            name="Beard Trim",
            description="Shape and trim",
            price=Decimal("15.00"),
            duration_minutes=15,
            color="#e67e22",
        ),
    ]
    session.add_all(services)
    return services


def _seed_employee(session: AsyncSession, tenant_id: uuid.UUID, services: List[Service]) -> None:
    session.add(
        Employee(
            tenant_id=tenant_id,
            first_name="Sam",
            last_name="Taylor",
            email="sam@demo.example.com",
            title="Barber",
            services=list(services),
            working_hours=[
                EmployeeWorkingHours(
                    tenant_id=tenant_id,
                    day_of_week=day,
                    start_time=time(9),
                    end_time=time(17),
                    is_working_day=True,
                )
                for day in range(5)
            ],
        )
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
