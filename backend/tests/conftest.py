from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from imaging_booking.config import Settings, get_settings
from imaging_booking.database import get_db, init_db
from imaging_booking.dependencies import get_email_notifier, get_payment_gateway
from imaging_booking.exceptions import DependencyError
from imaging_booking.main import app
from imaging_booking.models.appointment import Appointment
from imaging_booking.services.booking import AppointmentService
from imaging_booking.services.payment_gateway import Order, RazorpayGateway, compute_signature

KEY_SECRET = "test_secret"


class FakeGateway(RazorpayGateway):
    """Gateway that issues sequential order ids without network calls"""

    def __init__(self):
        super().__init__(key_id="rzp_test_key", key_secret=KEY_SECRET)
        self.orders = []
        self.fail = False
        self._ids = count(1)

    async def create_order(self, amount: int, currency: str, receipt: str) -> Order:
        if self.fail:
            raise DependencyError("payment gateway unavailable")
        order = Order(id=f"order_test{next(self._ids):04d}", amount=amount, currency=currency, receipt=receipt)
        self.orders.append(order)
        return order


class RecordingNotifier:
    """Collects sent emails; can be told to fail"""

    def __init__(self):
        self.sent = []
        self.raise_error = False

    async def send(self, to: str, subject: str, html: str) -> bool:
        if self.raise_error:
            raise RuntimeError("smtp down")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True


def future_slot(days: int = 7, hour: int = 10, minute: int = 0) -> str:
    """ISO timestamp in the future, in UTC"""
    slot = (datetime.now(timezone.utc) + timedelta(days=days)).replace(
        hour=hour, minute=minute, second=0, microsecond=0
    )
    return slot.isoformat()


def sign(order_id: str, payment_id: str) -> str:
    return compute_signature(KEY_SECRET, order_id, payment_id)


def set_status_behind_session(db, appointment_id: str, status: str) -> None:
    """Change the stored status without touching objects already loaded in the session"""
    table = Appointment.__table__
    db.execute(table.update().where(table.c.id == appointment_id).values(status=status))


def booking_payload(**overrides) -> dict:
    payload = {
        "name": "Asha Rao",
        "email": "asha.rao@example.com",
        "phone": "9876543210",
        "test_type": "xray",
        "appointment_date": future_slot(),
        "notes": None,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        RAZORPAY_KEY_ID="rzp_test_key",
        RAZORPAY_KEY_SECRET=KEY_SECRET,
        CONTACT_PHONE="080-4000-1234",
        CONTACT_EMAIL="care@imaging.example.com",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(db, gateway, notifier, settings):
    return AppointmentService(db, gateway, notifier, settings)


@pytest.fixture
def client(engine, gateway, notifier, settings):
    testing_session = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def override_get_db():
        session = testing_session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_email_notifier] = lambda: notifier
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()
