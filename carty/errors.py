"""
Cart errors.

Message constants are kept next to the exceptions that use them.
"""

# Item errors
ERROR_INVALID_ITEM = "Item must be a string or an object with at least an id property."

# Store errors
ERROR_STORE_FAILED = "Cart store {operation} failed"
ERROR_STORE_UNAVAILABLE = "Cart store unavailable"

# Option errors
ERROR_UNKNOWN_OPTION = "Unknown cart option: {name}"
ERROR_INVALID_OPTION = "Invalid value for cart option: {name}"


class CartError(Exception):
    """Base class for all cart errors."""


class InvalidItem(CartError, ValueError):
    """Raised when item attributes do not describe a valid item."""

    def __init__(self, message: str = ERROR_INVALID_ITEM):
        super().__init__(message)


class StoreError(CartError):
    """Raised when the persistence store rejects an operation."""

    def __init__(self, operation: str, message: str | None = None):
        self.operation = operation
        super().__init__(message or ERROR_STORE_FAILED.format(operation=operation))
