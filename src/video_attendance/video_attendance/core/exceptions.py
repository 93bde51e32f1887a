class DomainError(Exception):
    """Base exception for business rule violations."""

    retryable = False


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced material, course or record does not exist."""


class AuthorizationError(DomainError):
    """Raised when a caller lacks permission for an action."""


class TransientStoreError(DomainError):
    """Raised when the store failed in a way the client may retry."""

    retryable = True


class ConcurrencyConflictError(TransientStoreError):
    """Raised when a versioned write kept losing against concurrent writers."""
