from typing import List, Optional


class OrderError(Exception):
    """Base error raised by the order backend; carries the HTTP status to report."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OrderValidationError(OrderError):
    status_code = 400


class OrderNotFoundError(OrderError):
    status_code = 404


class OrderPermissionError(OrderError):
    status_code = 403


class OrderTransitionError(OrderError):
    status_code = 409


class OrderBackendError(Exception):
    """A call to the order backend failed (rejected, unreachable or malformed reply)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CheckoutError(Exception):
    pass


class CheckoutPreconditionError(CheckoutError):
    """No invoice or no authenticated buyer: the flow goes back to the cart."""


class CheckoutInProgressError(CheckoutError):
    pass


class CheckoutValidationError(CheckoutError):
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {', '.join(self.errors)}")

    @property
    def message(self) -> str:
        return str(self)
