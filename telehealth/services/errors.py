"""Failures raised inside the booking and appointment workflows.

Each carries the HTTP status the route layer answers with. The booking entry
point turns them into ``{success: false, error: ...}`` envelopes.
"""

from fastapi import status


class BookingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidInputError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN


class InsufficientCreditError(BookingError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class SlotConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT


class DependencyFailureError(BookingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
