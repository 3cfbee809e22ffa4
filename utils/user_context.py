"""
The tenant an invoice operation runs for.

Invoices, sequence counters and audit rows are all scoped to the signed-in
user. The id travels in a contextvar so stores, the allocator and the audit
log pick it up without threading it through every call. Each asyncio task
and thread sees its own value.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import UUID

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


def peek_current_user_id() -> UUID | None:
    """The current tenant, or None outside any user context."""
    return _current_user_id.get()


def get_current_user_id() -> UUID:
    """
    The current tenant.

    Raises RuntimeError outside a user context: tenant-scoped work without a
    tenant is a bug, never something to default around.
    """
    user_id = _current_user_id.get()
    if user_id is None:
        raise RuntimeError(
            "No user context set. Invoice operations are tenant-scoped and "
            "must run inside user_context() or an identified request."
        )
    return user_id


def set_current_user_id(user_id: UUID) -> None:
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: UUID):
    """
    Run a block as user_id, restoring whatever was current before.

        with user_context(tenant_id):
            invoice_service.create(draft)
    """
    token = _current_user_id.set(user_id)
    try:
        yield user_id
    finally:
        _current_user_id.reset(token)
