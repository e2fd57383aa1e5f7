# ==============================================================================
# Access Rules
# ==============================================================================
"""
Cross-customer access checks.

Every query names the customer whose data it reads. The caller may omit it
(their own data) or repeat their own id; anything else is rejected.
"""

from uuid import UUID

from journey.core.errors import NoAccessError
from journey.core.models import Principal


def resolve_target(principal: Principal, customer_id: UUID | None = None) -> UUID:
    """
    Return the customer id a query should read.

    Args:
        principal: The caller
        customer_id: Requested customer, or None for the caller's own data

    Raises:
        NoAccessError: If customer_id belongs to someone else
    """
    if customer_id is None:
        return principal.customer_id
    if customer_id != principal.customer_id:
        raise NoAccessError("customer")
    return customer_id


def ensure_owner(principal: Principal, owner_id: UUID, what: str) -> None:
    """Raise NoAccessError unless ``owner_id`` is the caller."""
    if owner_id != principal.customer_id:
        raise NoAccessError(what)
