"""
Session-level interceptors applied to every ORM session.

- before_flush stamps audit columns (created/updated/deleted at/by) from the
  actor bound with src.db.session.bind_actor and refuses tenant_id changes.
- do_orm_execute adds a global "is_deleted = false" criteria to ORM selects
  of soft-deletable entities unless the statement opts out with
  execution_options(include_deleted=True).
"""

from __future__ import annotations

from sqlalchemy import event, inspect
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

from .base import AuditMixin, SoftDeleteMixin, TenantMixin, utcnow
from .session import ACTOR_INFO_KEY


@event.listens_for(Session, "before_flush")
def _stamp_audit_columns(session: Session, flush_context, instances) -> None:
    actor = session.info.get(ACTOR_INFO_KEY) or "System"
    now = utcnow()

    for obj in session.new:
        if isinstance(obj, AuditMixin):
            if obj.created_at is None:
                obj.created_at = now
            if obj.created_by is None:
                obj.created_by = actor

    for obj in session.dirty:
        if not session.is_modified(obj, include_collections=False):
            continue
        if isinstance(obj, TenantMixin) and inspect(obj).attrs.tenant_id.history.deleted:
            raise ValueError(
                f"tenant_id of {type(obj).__name__} {getattr(obj, 'id', '')} is immutable"
            )
        if isinstance(obj, AuditMixin):
            obj.updated_at = now
            obj.updated_by = actor
        if isinstance(obj, SoftDeleteMixin) and obj.is_deleted:
            if obj.deleted_at is None:
                obj.deleted_at = now
            if obj.deleted_by is None:
                obj.deleted_by = actor


@event.listens_for(Session, "do_orm_execute")
def _hide_soft_deleted(execute_state: ORMExecuteState) -> None:
    if (
        execute_state.is_select
        and not execute_state.is_column_load
        and not execute_state.is_relationship_load
        and not execute_state.execution_options.get("include_deleted", False)
    ):
        execute_state.statement = execute_state.statement.options(
            with_loader_criteria(
                SoftDeleteMixin,
                lambda cls: cls.is_deleted == False,  # noqa: E712
                include_aliases=True,
            )
        )
