class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class AllocationInputError(AppError):
    """Raised when exams, rooms or faculty are missing fields the engine needs."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)


class InsufficientResourceError(AppError):
    """Raised when a session cannot be staffed; the run records it and moves on."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)


class DutyStateError(AppError):
    """Raised when a duty transition is not allowed in the allocation's current state."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)


class ConcurrentUpdateError(AppError):
    """Raised when an allocation was modified by another request in the meantime."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} was modified concurrently; reload and retry",
            status_code=409,
        )


class AllocationInProgressError(AppError):
    """Raised when an allocation run is already active for an overlapping scope."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
