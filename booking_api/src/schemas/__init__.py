"""
Public Pydantic schemas used by FastAPI routes, handlers, and tests.

Read models (DTOs) are grouped by feature (appointments, customers, employees,
services, tenants, settings, auth, admin). Handlers return them inside a
Result envelope; cached Results are (de)serialized through the same models.
"""

from .common import MessageResponse  # noqa: F401
