class UnknownServiceError(ValueError):
    """Raised when a service key does not exist in the catalog."""
    pass


class InvalidInputError(ValueError):
    """Raised for malformed dates, times or ranges passed by callers."""
    pass


class CalendarSourceError(RuntimeError):
    """Raised when the calendar store fails (timeouts, network errors, bad payloads)."""
    pass


class CatalogStorageError(RuntimeError):
    """Raised when the service catalog file cannot be read or written."""
    pass
