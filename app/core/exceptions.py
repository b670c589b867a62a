from typing import Any, Optional


class BookingError(Exception):
    """Base class for booking errors that map onto an HTTP status."""

    status_code: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class BookingValidationError(BookingError):
    """Missing or malformed booking fields."""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(f"Booking validation failed: {'; '.join(self.errors)}", 400)


class SlotConflictError(BookingError):
    """The requested instant is already taken by another booking."""

    def __init__(self, conflicting: Any = None):
        self.conflicting = conflicting
        super().__init__("This time slot is already booked, choose another", 409)


class BookingNotFoundError(BookingError):
    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found", 404)


class StoreError(BookingError):
    """The booking store failed to complete an operation."""

    def __init__(self, message: str = "Booking store unavailable", status_code: int = 500):
        super().__init__(message, status_code)


class StoreTimeoutError(StoreError):
    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Store operation '{operation}' timed out after {timeout}s", 504)
