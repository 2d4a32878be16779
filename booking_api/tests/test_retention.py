from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from src.application.features.admin import GetRetentionStats, PurgeDeletedData, PurgeTenantData
from src.core.errors import ValidationError
from src.db.base import utcnow
from src.db.models import Appointment, Customer, Employee, Service
from src.services.data_retention import DataRetentionService


def _deleted(obj, days_ago):
    obj.is_deleted = True
    obj.deleted_at = utcnow() - timedelta(days=days_ago)
    return obj


def _customer(tenant_id, name, days_ago=None):
    customer = Customer(tenant_id=tenant_id, first_name=name, last_name="Test", email=f"{name.lower()}@example.com")
    return customer if days_ago is None else _deleted(customer, days_ago)


async def _count(session, model):
    stmt = select(func.count()).select_from(model).execution_options(include_deleted=True)
    return (await session.execute(stmt)).scalar_one()


async def test_only_rows_past_retention_are_purged(session, settings, tenant):
    session.add_all(
        [
            _customer(tenant.id, "Old", days_ago=400),
            _customer(tenant.id, "Recent", days_ago=10),
            _customer(tenant.id, "Live"),
        ]
    )
    await session.commit()

    summary = await DataRetentionService(session, settings).purge(365)

    assert summary.customers == 1
    assert summary.total == 1
    assert await _count(session, Customer) == 2


async def test_appointments_of_purged_customers_go_with_them(session, settings, tenant):
    customer = _customer(tenant.id, "Gone", days_ago=400)
    employee = Employee(tenant_id=tenant.id, first_name="Sam", last_name="Taylor")
    service = Service(tenant_id=tenant.id, name="Haircut", price=Decimal("25"), duration_minutes=30)
    session.add_all([customer, employee, service])
    await session.flush()
    start = utcnow() - timedelta(days=500)
    session.add(
        Appointment(
            tenant_id=tenant.id,
            customer_id=customer.id,
            employee_id=employee.id,
            service_id=service.id,
            start_time=start,
            end_time=start + timedelta(minutes=30),
        )
    )
    await session.commit()

    summary = await DataRetentionService(session, settings).purge(365)

    assert (summary.customers, summary.appointments) == (1, 1)
    assert await _count(session, Appointment) == 0
    assert await _count(session, Employee) == 1


async def test_referenced_employees_and_services_are_kept(session, settings, tenant):
    customer = _customer(tenant.id, "Loyal")
    employee = _deleted(Employee(tenant_id=tenant.id, first_name="Ex", last_name="Staff"), 400)
    service = _deleted(Service(tenant_id=tenant.id, name="Retired", duration_minutes=30), 400)
    unused = _deleted(Service(tenant_id=tenant.id, name="Never booked", duration_minutes=30), 400)
    session.add_all([customer, employee, service, unused])
    await session.flush()
    start = utcnow() - timedelta(days=450)
    session.add(
        Appointment(
            tenant_id=tenant.id,
            customer_id=customer.id,
            employee_id=employee.id,
            service_id=service.id,
            start_time=start,
            end_time=start + timedelta(minutes=30),
        )
    )
    await session.commit()

    summary = await DataRetentionService(session, settings).purge(365)

    assert (summary.employees, summary.services, summary.appointments) == (0, 1, 0)
    assert await _count(session, Service) == 1


async def test_tenant_purge_leaves_other_tenants_alone(mediator, ctx, session, tenant, other_tenant):
    session.add_all([_customer(tenant.id, "Mine", days_ago=400), _customer(other_tenant.id, "Theirs", days_ago=400)])
    await session.commit()

    result = await mediator.send(PurgeTenantData(tenant_id=tenant.id, retention_days=365), ctx)

    assert result.data.customers == 1
    assert result.data.tenant_id == tenant.id
    remaining = (
        await session.execute(select(Customer.tenant_id).execution_options(include_deleted=True))
    ).scalars().all()
    assert remaining == [other_tenant.id]


async def test_global_purge_through_mediator(mediator, ctx, session, tenant, other_tenant):
    session.add_all([_customer(tenant.id, "A", days_ago=40), _customer(other_tenant.id, "B", days_ago=40)])
    await session.commit()

    kept = await mediator.send(PurgeDeletedData(), ctx)
    purged = await mediator.send(PurgeDeletedData(retention_days=30), ctx)

    assert kept.data.total == 0
    assert purged.data.customers == 2
    assert purged.message == "Successfully purged deleted records older than 30 days"


async def test_stats(mediator, ctx, session, tenant):
    session.add_all(
        [
            _customer(tenant.id, "Old", days_ago=400),
            _customer(tenant.id, "Recent", days_ago=10),
            _customer(tenant.id, "Live1"),
            _customer(tenant.id, "Live2"),
        ]
    )
    await session.commit()

    result = await mediator.send(GetRetentionStats(retention_days=365), ctx)

    stats = result.data
    assert stats.total_records == 4
    assert stats.deleted_records == 2
    assert stats.archivable_records == 1
    assert stats.deleted_percentage == 50.0
    assert stats.retention_days == 365


async def test_negative_retention_is_refused(mediator, ctx):
    with pytest.raises(ValidationError) as exc_info:
        await mediator.send(PurgeDeletedData.model_construct(retention_days=-1), ctx)

    assert exc_info.value.failures == {"retention_days": ["Retention days must be greater than or equal to 0."]}
