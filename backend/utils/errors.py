"""Domain errors raised by the marketplace services.

Every error carries the HTTP status it maps to; ``main.py`` registers a single
exception handler that turns them into JSON responses.
"""


class MarketplaceError(Exception):
    """Base exception for all marketplace domain errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(MarketplaceError):
    """Raised for bad input: empty cart, quantity below 1, unknown period."""

    status_code = 400


class NotFoundError(MarketplaceError):
    """Raised when a referenced product, order or cart line is absent."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        self.resource = resource
        self.identifier = identifier
        msg = f"{resource} not found"
        if identifier is not None:
            msg = f"{resource} {identifier} not found"
        super().__init__(msg)


class ForbiddenError(MarketplaceError):
    """Raised when the actor has no stake in the requested order."""

    status_code = 403


class InvalidTransitionError(MarketplaceError):
    """Raised when a status change is not in the transition table."""

    status_code = 400

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from '{current}' to '{requested}'")


class ConflictError(MarketplaceError):
    """Raised when a concurrent writer won a compare-and-set."""

    status_code = 409
