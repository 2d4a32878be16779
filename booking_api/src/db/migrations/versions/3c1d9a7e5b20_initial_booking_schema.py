"""Initial booking schema.

- tenants, tenant_working_hours
- users
- customers
- services
- employees, employee_services, employee_working_hours
- appointments
- settings

Tenant isolation is enforced by explicit tenant_id filters in the repositories;
every tenant-owned table carries audit and soft-delete columns.
"""

from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d9a7e5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit() -> List[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.String(100), nullable=True),
    ]


def _soft_delete() -> List[sa.Column]:
    return [
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(100), nullable=True),
    ]


def _tenant_fk(table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        ["tenant_id"], ["tenants.id"], ondelete="CASCADE", name=f"fk_{table}_tenant_id_tenants"
    )


def _tenant_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_tenant_id", table, ["tenant_id"])
    op.create_index(f"ix_{table}_is_deleted", table, ["is_deleted"])


def upgrade() -> None:
    # Tenants
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("subdomain", sa.String(63), nullable=False),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("primary_color", sa.String(7), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
        *_audit(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint("id", name="pk_tenants"),
        sa.UniqueConstraint("subdomain", name="uq_tenants_subdomain"),
    )
    _tenant_indexes("tenants")

    op.create_table(
        "tenant_working_hours",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("open_time", sa.Time(), nullable=False),
        sa.Column("close_time", sa.Time(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_audit(),
        sa.PrimaryKeyConstraint("id", name="pk_tenant_working_hours"),
        _tenant_fk("tenant_working_hours"),
    )
    op.create_index("ix_tenant_working_hours_tenant_id", "tenant_working_hours", ["tenant_id"])

    # Users (identity); tenant is optional until the user joins a business
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("hashed_password", sa.Text(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("is_superadmin", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("refresh_token", sa.String(128), nullable=True),
        sa.Column("refresh_token_expiry_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_audit(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="SET NULL", name="fk_users_tenant_id_tenants"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])
    op.create_index("ix_users_refresh_token", "users", ["refresh_token"])

    # Customers
    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("street", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        *_audit(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint("id", name="pk_customers"),
        _tenant_fk("customers"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL", name="fk_customers_user_id_users"),
    )
    _tenant_indexes("customers")
    op.create_index("ix_customers_email", "customers", ["email"])

    # Services
    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("color", sa.String(7), nullable=False),
        *_audit(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint("id", name="pk_services"),
        _tenant_fk("services"),
    )
    _tenant_indexes("services")

    # Employees
    op.create_table(
        "employees",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_audit(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint("id", name="pk_employees"),
        _tenant_fk("employees"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL", name="fk_employees_user_id_users"),
    )
    _tenant_indexes("employees")
    op.create_index("ix_employees_email", "employees", ["email"])

    op.create_table(
        "employee_services",
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("service_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("employee_id", "service_id", name="pk_employee_services"),
        sa.ForeignKeyConstraint(
            ["employee_id"], ["employees.id"], ondelete="CASCADE", name="fk_employee_services_employee_id_employees"
        ),
        sa.ForeignKeyConstraint(
            ["service_id"], ["services.id"], ondelete="CASCADE", name="fk_employee_services_service_id_services"
        ),
    )

    op.create_table(
        "employee_working_hours",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_working_day", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_audit(),
        sa.PrimaryKeyConstraint("id", name="pk_employee_working_hours"),
        _tenant_fk("employee_working_hours"),
        sa.ForeignKeyConstraint(
            ["employee_id"],
            ["employees.id"],
            ondelete="CASCADE",
            name="fk_employee_working_hours_employee_id_employees",
        ),
    )
    op.create_index("ix_employee_working_hours_tenant_id", "employee_working_hours", ["tenant_id"])
    op.create_index("ix_employee_working_hours_employee_id", "employee_working_hours", ["employee_id"])

    # Appointments
    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("service_id", sa.Uuid(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_guest", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("guest_first_name", sa.String(100), nullable=True),
        sa.Column("guest_last_name", sa.String(100), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
        sa.Column("guest_phone_number", sa.String(20), nullable=True),
        sa.Column("customer_message", sa.String(1000), nullable=True),
        *_audit(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint("id", name="pk_appointments"),
        _tenant_fk("appointments"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], name="fk_appointments_customer_id_customers"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], name="fk_appointments_employee_id_employees"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], name="fk_appointments_service_id_services"),
    )
    _tenant_indexes("appointments")
    op.create_index("ix_appointments_customer_id", "appointments", ["customer_id"])
    op.create_index("ix_appointments_employee_id", "appointments", ["employee_id"])
    op.create_index("ix_appointments_service_id", "appointments", ["service_id"])
    op.create_index("ix_appointments_guest_email", "appointments", ["guest_email"])
    op.create_index(
        "ix_appointments_employee_slot",
        "appointments",
        ["tenant_id", "employee_id", "start_time", "end_time"],
    )

    # Settings
    op.create_table(
        "settings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("data_type", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("is_system_setting", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        *_audit(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint("id", name="pk_settings"),
        _tenant_fk("settings"),
        sa.UniqueConstraint("tenant_id", "key", name="uq_settings_tenant_key"),
    )
    _tenant_indexes("settings")


def downgrade() -> None:
    for table in (
        "settings",
        "appointments",
        "employee_working_hours",
        "employee_services",
        "employees",
        "services",
        "customers",
        "users",
        "tenant_working_hours",
        "tenants",
    ):
        op.drop_table(table)
