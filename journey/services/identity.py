# ==============================================================================
# Identity Service
# ==============================================================================
"""
Turns a caller credential into an explicit Principal.

Token issuing and validation live outside this package; here a customer's
public key is the credential, as used by the CLI.
"""

import logging

from journey.base import Directory
from journey.core.errors import UnauthorizedError
from journey.core.models import Principal

logger = logging.getLogger(__name__)


class IdentityService:
    """Resolves callers against the customer directory."""

    def __init__(self, directory: Directory):
        self._directory = directory

    def authenticate(self, customer_key: str) -> Principal:
        """
        Build the Principal of the customer owning ``customer_key``.

        Raises:
            UnauthorizedError: If the key is unknown or the customer is inactive
        """
        customer = self._directory.get_customer_by_key(customer_key)
        if customer is None or not customer.active:
            logger.warning("Rejected credential for unknown or inactive customer")
            raise UnauthorizedError("customer key")
        return Principal(customer_id=customer.id, role=customer.role, approved=customer.approved)
