from typing import Optional


class DomainException(Exception):
    pass


class ValidationError(DomainException):
    pass


class PermissionDeniedError(DomainException):
    pass


class NotFoundError(DomainException):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class NotificationNotFoundError(NotFoundError):
    pass


class BookNotFoundError(NotFoundError):
    pass


class ProofNotFoundError(NotFoundError):
    pass


class InsufficientStockError(ValidationError):
    def __init__(self, book_id: str, available: int, required: int):
        self.book_id = book_id
        self.available = available
        self.required = required
        super().__init__(f"Not enough stock for book {book_id}. Available: {available}, required: {required}")


class InvalidStateTransition(DomainException):
    def __init__(self, current, target, message: Optional[str] = None):
        self.current = current
        self.target = target
        if message is None:
            message = f"Cannot move payment notification from '{current}' to '{target}'"
        super().__init__(message)


class ProofAlreadySubmittedError(InvalidStateTransition):
    """A proof was already attached to this notification. The caller may just refresh."""

    def __init__(self, notification_id: str, current="proof_uploaded"):
        self.notification_id = notification_id
        super().__init__(
            current,
            "proof_uploaded",
            f"Payment proof already submitted for notification {notification_id}"
        )


class UpstreamUnavailableError(DomainException):
    pass


class StorageServiceError(UpstreamUnavailableError):
    pass


class DuplicateRecordError(DomainException):
    pass
