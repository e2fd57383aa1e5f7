# ==============================================================================
# Domain Errors
# ==============================================================================
"""
Exception hierarchy for the journey analytics core.

Every error carries an HTTP-like status code so that any outer surface
(CLI, web layer) can map it without knowing the concrete class.
"""


class JourneyError(Exception):
    """Base class for all expected, user-facing failures."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(JourneyError):
    """Unknown customer, page or block, or an empty aggregate range."""

    status_code = 404

    def __init__(self, what: str):
        super().__init__(f"{what} not found")


class NoAccessError(JourneyError):
    """The caller asked for another customer's data."""

    status_code = 403

    def __init__(self, what: str):
        super().__init__(f"No access to {what}")


class UnauthorizedError(JourneyError):
    """Bad or unknown credential."""

    status_code = 401

    def __init__(self, what: str):
        super().__init__(f"Can't authenticate you by {what}")


class ConflictError(JourneyError):
    """Uniqueness violation in the store."""

    status_code = 409

    def __init__(self, what: str):
        super().__init__(f"{what} is already used")


class CacheContentionError(Exception):
    """Optimistic cache update gave up after repeated concurrent writes."""
