"""Domain errors raised by services and rendered by the app's exception handlers."""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, details: dict | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class InvalidQuantityError(ValidationError):
    pass


class EmptyCartError(ValidationError):
    pass


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class InsufficientStockError(AppError):
    """Requested quantity exceeds the per-size stock."""
    status_code = 400


class SizeUnavailableError(AppError):
    """The product has no stock row for the requested size."""
    status_code = 400


class PaymentGatewayError(AppError):
    status_code = 500


class InternalError(AppError):
    status_code = 500
