from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple
from uuid import UUID


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class RequestContext:
    """
    Caller identity resolved once per request and passed explicitly to the mediator.

    tenant_id is None when no tenant could be resolved (anonymous or tenant-less
    user); tenant-scoped requests are rejected in that case.
    """

    tenant_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    email: Optional[str] = None
    roles: Tuple[str, ...] = field(default_factory=tuple)
    correlation_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def has_role(self, *roles: str) -> bool:
        return not set(roles).isdisjoint(self.roles)

    @property
    def actor(self) -> str:
        """Audit actor written to created_by/updated_by/deleted_by columns."""
        return str(self.user_id) if self.user_id else "System"

    def for_tenant(self, tenant_id: UUID) -> "RequestContext":
        """Return a copy bound to another tenant (public booking by subdomain)."""
        return RequestContext(
            tenant_id=tenant_id,
            user_id=self.user_id,
            email=self.email,
            roles=self.roles,
            correlation_id=self.correlation_id,
        )
