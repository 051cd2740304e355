"""
Booking, payment confirmation and cancellation workflows
"""
import logging
import math
import re
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session

from ..config import Settings
from ..exceptions import BookingError, ConflictError, InvalidSignatureError, NotFoundError, ValidationError
from ..models.appointment import (
    Appointment,
    AppointmentStatus,
    PaymentStatus,
    TEST_PRICES,
    NOTES_MAX_LENGTH,
)
from .email_templates import cancellation_email, confirmation_email
from .notifications import EmailNotifier
from .payment_gateway import Order, RazorpayGateway
from .repository import AppointmentRepository, build_filter

logger = logging.getLogger(__name__)

EMAIL_MAX_LENGTH = 254
# A separator is required between word runs, so each input splits one way only
EMAIL_RE = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*(?:\.\w{2,3})+$", re.ASCII)
PHONE_RE = re.compile(r"^[0-9]{10}$")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Schedules a notification coroutine, e.g. BackgroundTasks.add_task
Dispatcher = Callable[..., None]


@dataclass
class BookingResult:
    appointment: Appointment
    order: Order


@dataclass
class AppointmentPage:
    appointments: List[Appointment]
    current_page: int
    total_pages: int
    total_appointments: int


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """ISO 8601 string or datetime -> naive UTC datetime"""
    if not isinstance(value, datetime):
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError("invalid date")
    try:
        return to_naive_utc(value)
    except OverflowError:
        # offset pushes the instant outside the representable range
        raise ValidationError("invalid date")


def parse_range_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Listing bound; a bare date as an upper bound covers the whole day"""
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    if end_of_day:
        try:
            return datetime.combine(date.fromisoformat(text), time.max)
        except ValueError:
            pass
    return parse_datetime(text)


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


class AppointmentService:
    """Appointment workflows over the store, payment gateway and notifier"""

    def __init__(
        self,
        db: Session,
        gateway: RazorpayGateway,
        notifier: EmailNotifier,
        settings: Settings,
        dispatch: Optional[Dispatcher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = AppointmentRepository(db)
        self.gateway = gateway
        self.notifier = notifier
        self.settings = settings
        self.dispatch = dispatch
        self.clock = clock

    # ==================== Booking ====================

    async def book_appointment(
        self,
        name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        test_type: Optional[str],
        appointment_date: Union[str, datetime, None],
        notes: Optional[str] = None,
    ) -> BookingResult:
        """
        Validate a booking request, create the gateway order and store a pending appointment

        Validation is fail-fast in a fixed order: required fields, email,
        phone, test type, date, notes, slot availability. The gateway order
        is created before the record so no appointment exists without one.
        """
        required = [
            ("name", name),
            ("email", email),
            ("phone", phone),
            ("testType", test_type),
            ("appointmentDate", appointment_date),
        ]
        for field, value in required:
            if isinstance(value, datetime):
                continue
            if not _clean(value):
                raise ValidationError(f"{field} is required")

        name = _clean(name)
        email = _clean(email).lower()
        phone = _clean(phone)
        test_type = _clean(test_type)

        if len(email) > EMAIL_MAX_LENGTH or not EMAIL_RE.match(email):
            raise ValidationError("invalid email")

        if not PHONE_RE.match(phone):
            raise ValidationError("invalid phone")

        if test_type not in TEST_PRICES:
            raise ValidationError("invalid test type")
        amount = TEST_PRICES[test_type]

        slot = parse_datetime(appointment_date)
        if slot <= to_naive_utc(self.clock()):
            raise ValidationError("date in the past")

        notes = _clean(notes) or None
        if notes and len(notes) > NOTES_MAX_LENGTH:
            raise ValidationError(f"notes must be at most {NOTES_MAX_LENGTH} characters")

        if self.repository.find_active_in_slot(slot, test_type):
            raise ConflictError("slot already booked")

        order = await self.gateway.create_order(
            amount=amount * 100,
            currency=self.settings.PAYMENT_CURRENCY,
            receipt=f"rcpt_{uuid.uuid4().hex}",
        )

        appointment = Appointment(
            name=name,
            email=email,
            phone=phone,
            test_type=test_type,
            appointment_date=slot,
            notes=notes,
            status=AppointmentStatus.PENDING.value,
            amount=amount,
            order_id=order.id,
            payment_status=PaymentStatus.PENDING.value,
        )
        try:
            appointment = self.repository.insert(appointment)
        except BookingError:
            logger.warning(f"Order {order.id} left without an appointment")
            raise

        logger.info(f"Appointment {appointment.id} booked: {test_type} at {slot.isoformat()} (order {order.id})")
        return BookingResult(appointment=appointment, order=order)

    # ==================== Payment confirmation ====================

    async def verify_payment(
        self,
        order_id: Optional[str],
        payment_id: Optional[str],
        signature: Optional[str],
    ) -> Appointment:
        """
        Confirm an appointment after checking the gateway signature

        The confirmation email goes out only on the first transition into
        confirmed; repeated calls with a valid signature leave the same state.
        """
        for field, value in (("orderId", order_id), ("paymentId", payment_id), ("signature", signature)):
            if not _clean(value):
                raise ValidationError(f"{field} is required")
        order_id, payment_id, signature = order_id.strip(), payment_id.strip(), signature.strip()

        if not self.gateway.verify_signature(order_id, payment_id, signature):
            logger.warning(f"Invalid payment signature for order {order_id}")
            raise InvalidSignatureError("invalid payment signature")

        appointment = self.repository.find_by_order_id(order_id)
        if not appointment:
            raise NotFoundError("appointment not found")

        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise ConflictError("appointment is cancelled")

        values = {
            "status": AppointmentStatus.CONFIRMED.value,
            "payment_status": PaymentStatus.COMPLETED.value,
            "payment_id": payment_id,
        }
        # Only the request that moves the row out of pending sends the email
        newly_confirmed = self.repository.update(
            appointment.id, values, from_statuses=[AppointmentStatus.PENDING.value]
        )
        if not newly_confirmed:
            reconfirmed = self.repository.update(
                appointment.id, values, from_statuses=[AppointmentStatus.CONFIRMED.value]
            )
            if not reconfirmed:
                if self.repository.reload(appointment.id) is None:
                    raise NotFoundError("appointment not found")
                logger.warning(f"Appointment {appointment.id} was cancelled before payment {payment_id} was applied")
                raise ConflictError("appointment is cancelled")
        appointment = self._reload(appointment.id)

        if newly_confirmed:
            logger.info(f"Appointment {appointment.id} confirmed (payment {payment_id})")
            subject, html = confirmation_email(
                name=appointment.name,
                test_type=appointment.test_type,
                appointment_date=appointment.appointment_date,
                amount=appointment.amount,
                payment_id=payment_id,
                contact_phone=self.settings.CONTACT_PHONE,
                contact_email=self.settings.CONTACT_EMAIL,
                tz_name=self.settings.DISPLAY_TIMEZONE,
            )
            await self._notify(appointment.email, subject, html)
        else:
            logger.info(f"Appointment {appointment.id} already confirmed, skipping email")

        return appointment

    # ==================== Cancellation & lifecycle ====================

    async def cancel_appointment(self, appointment_id: str) -> Appointment:
        """Cancel a pending or confirmed appointment; cancelled is terminal"""
        appointment = self.get_appointment(appointment_id)

        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise ConflictError("appointment already cancelled")

        cancelled = self.repository.update(
            appointment.id,
            {"status": AppointmentStatus.CANCELLED.value},
            from_statuses=[AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value],
        )
        if not cancelled:
            if self.repository.reload(appointment.id) is None:
                raise NotFoundError("appointment not found")
            raise ConflictError("appointment already cancelled")
        appointment = self._reload(appointment.id)
        logger.info(f"Appointment {appointment.id} cancelled")

        subject, html = cancellation_email(
            name=appointment.name,
            test_type=appointment.test_type,
            appointment_date=appointment.appointment_date,
            tz_name=self.settings.DISPLAY_TIMEZONE,
        )
        await self._notify(appointment.email, subject, html)
        return appointment

    def delete_appointment(self, appointment_id: str) -> None:
        appointment = self.get_appointment(appointment_id)
        self.repository.delete(appointment)
        logger.info(f"Appointment {appointment_id} deleted")

    def _reload(self, appointment_id: str) -> Appointment:
        appointment = self.repository.reload(appointment_id)
        if not appointment:
            raise NotFoundError("appointment not found")
        return appointment

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repository.find_by_id(appointment_id)
        if not appointment:
            raise NotFoundError("appointment not found")
        return appointment

    def list_appointments(
        self,
        status: Optional[str] = None,
        test_type: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> AppointmentPage:
        """Filtered page of appointments sorted by appointment date"""
        if status and status not in {s.value for s in AppointmentStatus}:
            raise ValidationError("invalid status")
        if test_type and test_type not in TEST_PRICES:
            raise ValidationError("invalid test type")
        if page < 1:
            raise ValidationError("page must be at least 1")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        criteria = build_filter(
            status=status or None,
            test_type=test_type or None,
            search=_clean(search) or None,
            start_date=parse_range_bound(start_date),
            end_date=parse_range_bound(end_date, end_of_day=True),
        )

        total = self.repository.count(criteria)
        appointments = self.repository.find(criteria, skip=(page - 1) * limit, limit=limit)

        return AppointmentPage(
            appointments=appointments,
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_appointments=total,
        )

    # ==================== Notifications ====================

    async def _notify(self, to: str, subject: str, html: str) -> None:
        """Hand the email to the dispatcher, or send inline when there is none"""
        if self.dispatch is not None:
            self.dispatch(self._send_quietly, to, subject, html)
            return
        await self._send_quietly(to, subject, html)

    async def _send_quietly(self, to: str, subject: str, html: str) -> None:
        try:
            await self.notifier.send(to, subject, html)
        except Exception as e:
            logger.error(f"Notification '{subject}' to {to} failed: {e}")
