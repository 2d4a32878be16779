"""Customer use cases."""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from pydantic import EmailStr, Field

from src.application.mediator import RequestHandler
from src.application.requests import (
    Cacheable,
    CacheInvalidating,
    Command,
    PagedQuery,
    Query,
    RequiredText,
    TenantScoped,
    key_part,
)
from src.application.results import PaginatedList, Result
from src.application.validation import Failure, Rules
from src.db.models.customer import Customer
from src.repositories.appointments import AppointmentRepository
from src.repositories.customers import CustomerRepository
from src.schemas.customers import CustomerRead

LIST_PATTERN = "customers_list"


def detail_key(customer_id: Optional[UUID]) -> str:
    return f"customer_detail_{customer_id}"


class CustomerFields(Command):
    first_name: RequiredText = Field(..., max_length=100, description="First name")
    last_name: RequiredText = Field(..., max_length=100, description="Last name")
    email: EmailStr = Field(..., description="Contact email, unique per tenant")
    phone_number: Optional[str] = Field(None, max_length=20)
    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)
    user_id: Optional[UUID] = Field(None, description="Link to a registered user")


class CreateCustomer(CustomerFields, TenantScoped, CacheInvalidating):
    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return LIST_PATTERN


class UpdateCustomer(CustomerFields, TenantScoped, CacheInvalidating):
    id: Optional[UUID] = Field(None, description="Customer id (taken from the URL)")

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return LIST_PATTERN


class DeleteCustomer(Command, TenantScoped, CacheInvalidating):
    id: UUID

    @property
    def cache_key_to_invalidate(self) -> Optional[str]:
        return detail_key(self.id)

    @property
    def cache_pattern_to_invalidate(self) -> Optional[str]:
        return LIST_PATTERN


class GetCustomerDetail(Query, TenantScoped, Cacheable):
    id: UUID

    cache_expiration = timedelta(minutes=10)
    result_type = Result[CustomerRead]

    @property
    def cache_key(self) -> str:
        return detail_key(self.id)


class GetCustomersList(PagedQuery, TenantScoped, Cacheable):
    search_term: Optional[str] = Field(None, description="Matches name, email or phone")

    cache_expiration = timedelta(minutes=5)
    result_type = Result[PaginatedList[CustomerRead]]

    @property
    def cache_key(self) -> str:
        return (
            f"customers_list_p{self.page_number}_s{self.page_size}"
            f"_q{key_part(self.search_term)}_sb{key_part(self.sort_by)}_sa{key_part(self.sort_ascending)}"
        )


def validate_has_id(request: UpdateCustomer) -> List[Failure]:
    return Rules().required("id", request.id, "Customer id is required.").failures


def _apply(customer: Customer, request: CustomerFields) -> None:
    customer.first_name = request.first_name.strip()
    customer.last_name = request.last_name.strip()
    customer.email = request.email.strip()
    customer.phone_number = request.phone_number
    customer.street = request.street
    customer.city = request.city
    customer.state = request.state
    customer.zip_code = request.zip_code
    customer.country = request.country
    customer.notes = request.notes
    if request.user_id is not None:
        customer.user_id = request.user_id


class CreateCustomerHandler(RequestHandler):
    async def handle(self, request: CreateCustomer) -> Result[CustomerRead]:
        repo = CustomerRepository(self.session)
        if not await repo.is_email_unique(request.tenant_id, request.email):
            return Result[CustomerRead].failure("Email is already in use.")

        customer = Customer(tenant_id=request.tenant_id)
        _apply(customer, request)
        await repo.add(customer)
        await repo.commit()
        return Result[CustomerRead].success(
            CustomerRead.model_validate(customer), message="Customer created successfully"
        )


class UpdateCustomerHandler(RequestHandler):
    async def handle(self, request: UpdateCustomer) -> Result[CustomerRead]:
        repo = CustomerRepository(self.session)
        customer = self.load_owned(await repo.get_by_id(request.id), "Customer", request.id, request.tenant_id)
        if not await repo.is_email_unique(request.tenant_id, request.email, exclude_id=customer.id):
            return Result[CustomerRead].failure("Email is already in use.")

        _apply(customer, request)
        await repo.commit()
        return Result[CustomerRead].success(
            CustomerRead.model_validate(customer), message="Customer updated successfully"
        )


class DeleteCustomerHandler(RequestHandler):
    """Soft delete. Past appointments keep pointing at the customer."""

    async def handle(self, request: DeleteCustomer) -> Result[None]:
        repo = CustomerRepository(self.session)
        customer = self.load_owned(await repo.get_by_id(request.id), "Customer", request.id, request.tenant_id)
        if await AppointmentRepository(self.session).has_future_appointments(customer_id=customer.id):
            return Result[None].failure(
                "Cannot delete customer with upcoming appointments. Please cancel them first."
            )
        customer.soft_delete()
        await repo.commit()
        return Result[None].success(message="Customer deleted successfully")


class GetCustomerDetailHandler(RequestHandler):
    async def handle(self, request: GetCustomerDetail) -> Result[CustomerRead]:
        repo = CustomerRepository(self.session)
        customer = self.load_owned(await repo.get_by_id(request.id), "Customer", request.id, request.tenant_id)
        return Result[CustomerRead].success(CustomerRead.model_validate(customer))


class GetCustomersListHandler(RequestHandler):
    async def handle(self, request: GetCustomersList) -> Result[PaginatedList[CustomerRead]]:
        repo = CustomerRepository(self.session)
        items, total = await repo.list_customers(
            request.tenant_id,
            search=request.search_term,
            sort_by=request.sort_by,
            sort_ascending=request.sort_ascending,
            page=request.page_number,
            page_size=request.page_size,
        )
        page = PaginatedList[CustomerRead].create(
            [CustomerRead.model_validate(c) for c in items], total, request.page_number, request.page_size
        )
        return Result[PaginatedList[CustomerRead]].success(page)


HANDLERS = {
    CreateCustomer: CreateCustomerHandler,
    UpdateCustomer: UpdateCustomerHandler,
    DeleteCustomer: DeleteCustomerHandler,
    GetCustomerDetail: GetCustomerDetailHandler,
    GetCustomersList: GetCustomersListHandler,
}

VALIDATORS = {
    UpdateCustomer: [validate_has_id],
}
