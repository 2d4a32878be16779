"""
ORM models for tenants, identity, customers, employees, services,
appointments and settings.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .tenant import (  # noqa: F401
    Tenant,
    TenantWorkingHours,
)
from .security import (  # noqa: F401
    User,
    UserRole,
)
from .customer import Customer  # noqa: F401
from .service import Service  # noqa: F401
from .employee import (  # noqa: F401
    Employee,
    EmployeeWorkingHours,
    employee_services,
)
from .appointment import (  # noqa: F401
    Appointment,
    AppointmentStatus,
    RELEASED_STATUSES,
)
from .setting import Setting  # noqa: F401
