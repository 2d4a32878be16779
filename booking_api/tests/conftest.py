import os

# Settings are read from the environment on first use; keep tests off any real database.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("AUTO_SEED", "false")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import src.db  # noqa: F401  (models and session interceptors)
from src.application.behaviors import default_behaviors
from src.application.cache import InMemoryCacheService
from src.application.features.customers import CreateCustomer
from src.application.features.employees import CreateEmployee
from src.application.features.services import CreateService
from src.application.features.settings import default_settings
from src.application.mediator import Mediator
from src.application.registry import build_registry
from src.core.context import RequestContext
from src.core.settings import get_app_settings
from src.db.base import Base
from src.db.models import Tenant
from src.schemas.employees import WorkingHoursItem


def next_weekday(weekday: int = 0, weeks_ahead: int = 1) -> date:
    """A future date falling on `weekday` (0=Monday), at least a week from today."""
    today = datetime.now(timezone.utc).date()
    return today + timedelta(days=(weekday - today.weekday()) % 7 + 7 * weeks_ahead)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


async def create_tenant(session, subdomain: str, name: str = "Test Business", is_active: bool = True) -> Tenant:
    tenant_id = uuid.uuid4()
    tenant = Tenant(
        id=tenant_id,
        tenant_id=tenant_id,
        name=name,
        subdomain=subdomain,
        primary_color="#3498db",
        is_active=is_active,
        working_hours=[],
    )
    session.add(tenant)
    await session.flush()
    for setting in default_settings():
        setting.tenant_id = tenant_id
        session.add(setting)
    await session.commit()
    return tenant


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def settings():
    return get_app_settings()


@pytest.fixture
def cache():
    return InMemoryCacheService()


@pytest.fixture(scope="session")
def registry():
    return build_registry()


@pytest.fixture
def mediator(session, cache, registry, settings):
    return Mediator(session, cache, registry, default_behaviors(registry, cache, settings), settings)


@pytest_asyncio.fixture
async def tenant(session):
    return await create_tenant(session, "acme", "Acme Salon")


@pytest_asyncio.fixture
async def other_tenant(session):
    return await create_tenant(session, "globex", "Globex Spa")


@pytest.fixture
def ctx(tenant):
    return RequestContext(tenant_id=tenant.id, user_id=uuid.uuid4(), email="owner@example.com", roles=("Admin",))


@pytest.fixture
def other_ctx(other_tenant):
    return RequestContext(tenant_id=other_tenant.id, user_id=uuid.uuid4(), roles=("Admin",))


@pytest.fixture
def anonymous_ctx():
    return RequestContext()


@pytest_asyncio.fixture
async def booking(mediator, ctx):
    """A 30 minute service, an employee working Monday to Friday 09:00-17:00 and a customer."""
    service = (
        await mediator.send(
            CreateService(name="Haircut", price=Decimal("25.00"), duration_minutes=30), ctx
        )
    ).data
    employee = (
        await mediator.send(
            CreateEmployee(
                first_name="Sam",
                last_name="Taylor",
                email="sam@example.com",
                service_ids=[service.id],
                working_hours=[
                    WorkingHoursItem(day_of_week=d, start_time=time(9), end_time=time(17)) for d in range(5)
                ],
            ),
            ctx,
        )
    ).data
    customer = (
        await mediator.send(
            CreateCustomer(first_name="Jane", last_name="Doe", email="jane@example.com"), ctx
        )
    ).data
    return SimpleNamespace(service=service, employee=employee, customer=customer)
