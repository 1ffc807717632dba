"""
Custom exception hierarchy for Memory Graph.

Provides structured error types for the service, engines and storage backends.
All exceptions inherit from MemoryGraphError for easy catching.
"""


class MemoryGraphError(Exception):
    """
    Base exception for all Memory Graph errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize Memory Graph error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StorageError(MemoryGraphError):
    """
    Domain store operation errors.
    Raised when reading or writing a storage backend fails.
    """

    pass


class ValidationError(MemoryGraphError):
    """
    Validation errors.
    Raised for blank content, unknown domains in domain refs, bad patterns.
    """

    pass


class NotFoundError(MemoryGraphError):
    """
    Resource not found errors.
    Raised when a requested domain or memory doesn't exist.
    """

    pass


class ConflictError(MemoryGraphError):
    """
    Conflict errors.
    Raised when creating a domain whose id is already registered.
    """

    pass


class ConfigurationError(MemoryGraphError):
    """
    Configuration errors.
    Raised when configuration is invalid or names an unknown backend.
    """

    pass
