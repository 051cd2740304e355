"""
Booking error taxonomy

Every error carries a short, client-safe message and the HTTP status it maps
to. Handlers in main.py render them as {"detail": message}.
"""


class BookingError(Exception):
    """Base class for booking workflow errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Malformed or missing input"""

    status_code = 400


class ConflictError(BookingError):
    """Slot already taken or transition out of a terminal state"""

    status_code = 409


class NotFoundError(BookingError):
    """Unknown appointment identifier"""

    status_code = 404


class InvalidSignatureError(BookingError):
    """Payment signature does not match"""

    status_code = 400


class DependencyError(BookingError):
    """Store, payment gateway or email transport failure"""

    status_code = 503
