from sqlalchemy import func, select

from src.application.features.auth import Login
from src.application.features.employees import GetEmployeesList
from src.core.context import RequestContext
from src.db.models import Service, Tenant
from src.db.seed import DEMO_ADMIN_EMAIL, DEMO_ADMIN_PASSWORD, seed_all


async def test_seed_is_idempotent(session):
    first = await seed_all(session)
    second = await seed_all(session)

    assert first == second
    tenants = (await session.execute(select(func.count()).select_from(Tenant))).scalar_one()
    services = (await session.execute(select(func.count()).select_from(Service))).scalar_one()
    assert (tenants, services) == (1, 2)


async def test_seeded_admin_can_log_in(session, mediator, anonymous_ctx):
    tenant_id = await seed_all(session)

    login = await mediator.send(Login(email=DEMO_ADMIN_EMAIL, password=DEMO_ADMIN_PASSWORD), anonymous_ctx)
    employees = await mediator.send(GetEmployeesList(), RequestContext(tenant_id=tenant_id))

    assert login.data.user.roles == ["Admin", "SuperAdmin"]
    assert login.data.user.tenant_id == tenant_id
    assert [len(e.services) for e in employees.data.items] == [2]
