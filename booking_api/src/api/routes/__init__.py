"""
API route modules.

This package contains subrouters for:
- Auth: login, register, refresh, revoke, password change, current user, users
- Tenants: business signup and tenant administration
- Customers, Employees, Services, Appointments: tenant-scoped CRUD
- Settings: tenant settings and typed views
- Admin: data retention
- Public booking: business page, slots and guest bookings by subdomain

Routers are included from src.api.main (under the /api/v1 prefix). Every route
builds a command or query and sends it through the mediator.
"""
