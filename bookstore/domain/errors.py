# bookstore/domain/errors.py


class AppError(Exception):
    """Base for errors that map onto an HTTP status at the API edge."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class AuthError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class ValidationError(AppError):
    status_code = 400


class CheckoutInProgressError(ValidationError):
    pass


class NotFoundError(AppError):
    status_code = 404


class PersistenceError(AppError):
    status_code = 500


class DeliveryConfigError(AppError):
    """Push delivery credentials are not configured."""

    status_code = 500


class NotificationDispatchError(AppError):
    """Raised inside the outbox worker only; never reaches an HTTP caller."""
