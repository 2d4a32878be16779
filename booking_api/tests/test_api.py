import uuid

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.api.main import app
from src.core.deps import get_cache
from src.core.security import get_password_hash
from src.db.models import User
from src.db.session import get_async_session

from conftest import at, next_weekday

API = "/api/v1"
PASSWORD = "Secret123"


@pytest_asyncio.fixture
async def client(session_maker, cache):
    async def _session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_cache] = lambda: cache
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


async def _signup(client, email="owner@example.com"):
    body = {
        "email": email,
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "first_name": "Olive",
        "last_name": "Owner",
    }
    registered = await client.post(f"{API}/auth/register", json=body)
    assert registered.status_code == 201
    login = await client.post(f"{API}/auth/login", json={"email": email, "password": PASSWORD})
    assert login.status_code == 200
    return login.json()["data"]["access_token"]


async def _business(client, email, subdomain):
    token = await _signup(client, email)
    created = await client.post(
        f"{API}/tenants/business",
        json={"name": subdomain.title(), "subdomain": subdomain},
        headers=_bearer(token),
    )
    assert created.status_code == 201
    return created.json()["data"]["tokens"]["access_token"], created.json()["data"]["tenant"]["id"]


async def _login(client, email):
    response = await client.post(f"{API}/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200
    return response.json()["data"]["access_token"]


async def test_health(client):
    response = await client.get(f"{API}/health")

    assert response.status_code == 200
    assert response.json() == {"message": "Healthy"}
    assert response.headers["X-Correlation-ID"]


async def test_context_echo_uses_tenant_header(client):
    tenant_id = str(uuid.uuid4())

    response = await client.get(f"{API}/health/context", headers={"X-Tenant-ID": tenant_id})
    malformed = await client.get(f"{API}/health/context", headers={"X-Tenant-ID": "nope"})

    assert response.json()["tenant_id"] == tenant_id
    assert malformed.status_code == 400


async def test_customers_require_authentication(client):
    response = await client.get(f"{API}/customers")

    assert response.status_code == 401
    body = response.json()
    assert body["succeeded"] is False
    assert body["errors"] == ["Not authenticated"]


async def test_business_signup_and_customer_crud(client):
    token = await _signup(client)

    no_business = await client.get(f"{API}/customers", headers=_bearer(token))
    assert no_business.status_code == 401

    created = await client.post(
        f"{API}/tenants/business",
        json={"name": "Bright Smiles", "subdomain": "bright"},
        headers=_bearer(token),
    )
    assert created.status_code == 201
    token = created.json()["data"]["tokens"]["access_token"]

    customer = await client.post(
        f"{API}/customers",
        json={"first_name": "Jane", "last_name": "Doe", "email": "jane@example.com"},
        headers=_bearer(token),
    )
    assert customer.status_code == 201
    customer_id = customer.json()["data"]["id"]

    listed = await client.get(f"{API}/customers", headers=_bearer(token))
    assert [c["id"] for c in listed.json()["data"]["items"]] == [customer_id]

    duplicate = await client.post(
        f"{API}/customers",
        json={"first_name": "Jane", "last_name": "Again", "email": "jane@example.com"},
        headers=_bearer(token),
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["succeeded"] is False

    deleted = await client.delete(f"{API}/customers/{customer_id}", headers=_bearer(token))
    assert deleted.status_code == 200
    missing = await client.get(f"{API}/customers/{customer_id}", headers=_bearer(token))
    assert missing.status_code == 404


async def test_admin_routes_need_admin_role(client):
    token = await _signup(client, "plain@example.com")

    response = await client.get(f"{API}/admin/data-retention/stats", headers=_bearer(token))

    assert response.status_code == 403


async def test_request_body_validation_is_422(client):
    response = await client.post(f"{API}/auth/register", json={"email": "x@example.com"})

    assert response.status_code == 422
    assert response.json()["message"] == "Request validation failed"


async def test_business_rule_validation_is_400(client):
    body = {
        "email": "weak@example.com",
        "password": "weak",
        "confirm_password": "weak",
        "first_name": "W",
        "last_name": "K",
    }

    response = await client.post(f"{API}/auth/register", json=body)

    assert response.status_code == 400
    assert "Password must be at least 8 characters" in response.json()["errors"]


async def test_out_of_range_paging_is_400(client):
    owner, _ = await _business(client, "owner@example.com", "bright")

    response = await client.get(f"{API}/customers", params={"page_size": 500}, headers=_bearer(owner))

    assert response.status_code == 400
    assert response.json()["errors"] == ["Page size must be less than or equal to 100."]


async def test_public_booking_flow(client, booking):
    base = f"{API}/public/booking/acme"
    day = next_weekday(0)

    page = await client.get(base)
    assert page.json()["data"]["name"] == "Acme Salon"

    services = await client.get(f"{base}/services")
    assert [s["name"] for s in services.json()["data"]["items"]] == ["Haircut"]

    staff = await client.get(f"{base}/services/{booking.service.id}/employees")
    assert [e["id"] for e in staff.json()["data"]] == [str(booking.employee.id)]

    params = {"employee_id": str(booking.employee.id), "service_id": str(booking.service.id), "date": day.isoformat()}
    slots = (await client.get(f"{base}/available-slots", params=params)).json()["data"]
    assert len(slots) == 16
    assert all(slot["is_available"] for slot in slots)

    booked = await client.post(
        f"{base}/appointments",
        json={
            "employee_id": str(booking.employee.id),
            "service_id": str(booking.service.id),
            "start_time": at(day, 10).isoformat(),
            "guest_first_name": "Gus",
            "guest_last_name": "Guest",
            "guest_email": "gus@example.com",
        },
    )
    assert booked.status_code == 201
    assert booked.json()["data"]["confirmation_code"]

    slots = (await client.get(f"{base}/available-slots", params=params)).json()["data"]
    taken = [slot for slot in slots if not slot["is_available"]]
    assert len(taken) == 1
    assert taken[0]["start_time"].startswith(f"{day.isoformat()}T10:00")


async def test_unknown_business_is_404(client):
    response = await client.get(f"{API}/public/booking/nowhere/services")

    assert response.status_code == 404
    assert response.json()["succeeded"] is False


async def test_tenantless_token_cannot_choose_a_tenant_by_header(client, tenant):
    token = await _signup(client, "drifter@example.com")
    headers = {**_bearer(token), "X-Tenant-ID": str(tenant.id)}

    customers = await client.get(f"{API}/customers", headers=headers)
    context = await client.get(f"{API}/health/context", headers=headers)

    assert customers.status_code == 403
    assert customers.json()["errors"] == ["Tenant mismatch"]
    assert context.status_code == 403


async def test_foreign_tenant_header_is_refused(client, other_tenant):
    token, tenant_id = await _business(client, "owner@example.com", "bright")

    foreign = await client.get(f"{API}/customers", headers={**_bearer(token), "X-Tenant-ID": str(other_tenant.id)})
    own = await client.get(f"{API}/customers", headers={**_bearer(token), "X-Tenant-ID": tenant_id})

    assert foreign.status_code == 403
    assert own.status_code == 200


async def test_subdomain_does_not_override_the_token_tenant(client, other_tenant):
    token, tenant_id = await _business(client, "owner@example.com", "bright")

    response = await client.get(f"{API}/health/context", headers={**_bearer(token), "Host": "globex.booking.example.com"})

    assert response.status_code == 200
    assert response.json()["tenant_id"] == tenant_id


async def test_customer_accounts_cannot_list_or_delete_customers(client):
    owner, tenant_id = await _business(client, "owner@example.com", "bright")
    body = {
        "email": "client@example.com",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "first_name": "Cal",
        "last_name": "Client",
    }
    joined = await client.post(f"{API}/auth/register", json=body, headers={"X-Tenant-ID": tenant_id})
    assert joined.status_code == 201
    customer_token = await _login(client, "client@example.com")
    customer_id = (await client.get(f"{API}/customers", headers=_bearer(owner))).json()["data"]["items"][0]["id"]

    listed = await client.get(f"{API}/customers", headers=_bearer(customer_token))
    deleted = await client.delete(f"{API}/customers/{customer_id}", headers=_bearer(customer_token))

    assert listed.status_code == 403
    assert deleted.status_code == 403


async def test_employee_self_registration_into_a_business_is_refused(client):
    _, tenant_id = await _business(client, "owner@example.com", "bright")
    body = {
        "email": "staff@example.com",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "first_name": "Stu",
        "last_name": "Staff",
        "role": "Employee",
    }

    response = await client.post(f"{API}/auth/register", json=body, headers={"X-Tenant-ID": tenant_id})

    assert response.status_code == 400
    assert response.json()["errors"] == ["Only customers can register with a business"]


async def test_business_owner_cannot_administer_other_tenants(client, session, other_tenant):
    owner, _ = await _business(client, "owner@example.com", "bright")
    session.add(
        User(
            email="ops@example.com",
            first_name="Ops",
            last_name="Team",
            hashed_password=get_password_hash(PASSWORD),
            role="Admin",
            is_superadmin=True,
        )
    )
    await session.commit()
    operator = await _login(client, "ops@example.com")

    delete = await client.delete(f"{API}/tenants/{other_tenant.id}", headers=_bearer(owner))
    listing = await client.get(f"{API}/tenants", headers=_bearer(owner))
    stats = await client.get(f"{API}/admin/data-retention/stats", headers=_bearer(owner))
    operator_stats = await client.get(f"{API}/admin/data-retention/stats", headers=_bearer(operator))
    operator_detail = await client.get(f"{API}/tenants/{other_tenant.id}", headers=_bearer(operator))

    assert (delete.status_code, listing.status_code, stats.status_code) == (403, 403, 403)
    assert operator_stats.status_code == 200
    assert operator_detail.json()["data"]["subdomain"] == "globex"
