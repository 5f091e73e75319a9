from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AlreadyRolledBackError(ServiceError):
    """Raised when rolling back a batch whose rollback timestamp is already set."""

    def __init__(self, message: str = "This batch has already been rolled back") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class PostingConflictError(ServiceError):
    """A concurrent execute claimed one of the slots first. Retry with a fresh preview."""

    def __init__(
        self,
        message: str = "One or more slots were posted by another request. Run the preview again and retry.",
    ) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
