"""
Diagnostic imaging appointment model
"""
import uuid
from enum import Enum

from sqlalchemy import Column, String, Integer, DateTime, TIMESTAMP, Index, text
from sqlalchemy.sql import func
from ..database import Base


class TestType(str, Enum):
    """Imaging procedures offered by the centre"""
    XRAY = "xray"
    CTSCAN = "ctscan"
    MRI = "mri"
    ULTRASOUND = "ultrasound"
    MAMMOGRAM = "mammogram"
    DEXA = "dexa"
    PET = "pet"
    ANGIOGRAPHY = "angiography"
    FLUOROSCOPY = "fluoroscopy"
    NUCLEAR = "nuclear"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


# Price in rupees for each test type
TEST_PRICES = {
    TestType.XRAY.value: 1000,
    TestType.CTSCAN.value: 5000,
    TestType.MRI.value: 8000,
    TestType.ULTRASOUND.value: 2000,
    TestType.MAMMOGRAM.value: 3000,
    TestType.DEXA.value: 2500,
    TestType.PET.value: 15000,
    TestType.ANGIOGRAPHY.value: 12000,
    TestType.FLUOROSCOPY.value: 4000,
    TestType.NUCLEAR.value: 10000,
}

TEST_NAMES = {
    TestType.XRAY.value: "X-Ray",
    TestType.CTSCAN.value: "CT Scan",
    TestType.MRI.value: "MRI",
    TestType.ULTRASOUND.value: "Ultrasound",
    TestType.MAMMOGRAM.value: "Mammogram",
    TestType.DEXA.value: "DEXA Scan",
    TestType.PET.value: "PET Scan",
    TestType.ANGIOGRAPHY.value: "Angiography",
    TestType.FLUOROSCOPY.value: "Fluoroscopy",
    TestType.NUCLEAR.value: "Nuclear Medicine",
}

NOTES_MAX_LENGTH = 500


def generate_id() -> str:
    return uuid.uuid4().hex


class Appointment(Base):
    """Imaging appointment booked by a patient"""

    __tablename__ = "appointments"
    __table_args__ = (
        # One active booking per slot; cancelled rows release it
        Index(
            "uq_appointments_active_slot",
            "appointment_date",
            "test_type",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    email = Column(String(254), nullable=False, index=True)
    phone = Column(String(10), nullable=False, index=True)
    test_type = Column(String(20), nullable=False)
    appointment_date = Column(DateTime, nullable=False, index=True)  # naive UTC
    notes = Column(String(NOTES_MAX_LENGTH), nullable=True)
    status = Column(String(20), nullable=False, default=AppointmentStatus.PENDING.value)
    amount = Column(Integer, nullable=False)
    order_id = Column(String(64), nullable=False, unique=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_id = Column(String(64), nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Appointment {self.test_type} {self.appointment_date} (Status: {self.status})>"
