"""
SQLAlchemy models
"""
from .appointment import (
    Appointment,
    AppointmentStatus,
    PaymentStatus,
    TestType,
    TEST_PRICES,
    TEST_NAMES,
    NOTES_MAX_LENGTH,
)

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "PaymentStatus",
    "TestType",
    "TEST_PRICES",
    "TEST_NAMES",
    "NOTES_MAX_LENGTH",
]
