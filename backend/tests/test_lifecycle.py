from datetime import datetime, timedelta, timezone

import pytest

from conftest import booking_payload, future_slot, set_status_behind_session, sign
from imaging_booking.exceptions import ConflictError, NotFoundError, ValidationError
from imaging_booking.models.appointment import Appointment


async def _book_many(service, n, **overrides):
    booked = []
    for i in range(n):
        slot = future_slot(days=1 + i // 8, hour=9 + i % 8)
        result = await service.book_appointment(**booking_payload(appointment_date=slot, **overrides))
        booked.append(result.appointment)
    return booked


async def test_cancel_pending(service, notifier):
    booking = await service.book_appointment(**booking_payload())

    appointment = await service.cancel_appointment(booking.appointment.id)

    assert appointment.status == "cancelled"
    assert len(notifier.sent) == 1
    assert notifier.sent[0]["subject"] == "Appointment Cancellation"
    assert "X-Ray" in notifier.sent[0]["html"]


async def test_cancel_confirmed(service):
    booking = await service.book_appointment(**booking_payload())
    order_id = booking.order.id
    await service.verify_payment(order_id, "pay_9", sign(order_id, "pay_9"))

    appointment = await service.cancel_appointment(booking.appointment.id)

    assert appointment.status == "cancelled"
    # payment details stay on record
    assert appointment.payment_status == "completed"
    assert appointment.payment_id == "pay_9"


async def test_cancel_unknown(service):
    with pytest.raises(NotFoundError, match="appointment not found"):
        await service.cancel_appointment("does-not-exist")


async def test_cancelled_is_terminal(service, notifier):
    booking = await service.book_appointment(**booking_payload())
    await service.cancel_appointment(booking.appointment.id)

    with pytest.raises(ConflictError, match="appointment already cancelled"):
        await service.cancel_appointment(booking.appointment.id)
    assert len(notifier.sent) == 1


async def test_concurrent_cancel_sends_one_email(monkeypatch, service, db, notifier):
    booking = await service.book_appointment(**booking_payload())
    lookup = service.repository.find_by_id

    def find_then_cancel(appointment_id):
        appointment = lookup(appointment_id)
        assert appointment.status == "pending"
        # another request cancels first
        set_status_behind_session(db, appointment_id, "cancelled")
        return appointment

    monkeypatch.setattr(service.repository, "find_by_id", find_then_cancel)

    with pytest.raises(ConflictError, match="appointment already cancelled"):
        await service.cancel_appointment(booking.appointment.id)
    assert service.repository.reload(booking.appointment.id).status == "cancelled"
    assert notifier.sent == []


async def test_cancel_survives_notifier_failure(service, notifier):
    notifier.raise_error = True
    booking = await service.book_appointment(**booking_payload())

    appointment = await service.cancel_appointment(booking.appointment.id)

    assert appointment.status == "cancelled"


async def test_delete(service, db, notifier):
    booking = await service.book_appointment(**booking_payload())

    service.delete_appointment(booking.appointment.id)

    assert db.query(Appointment).count() == 0
    assert notifier.sent == []
    with pytest.raises(NotFoundError):
        service.get_appointment(booking.appointment.id)


async def test_delete_unknown(service):
    with pytest.raises(NotFoundError):
        service.delete_appointment("does-not-exist")


async def test_delete_is_independent_of_status(service, db):
    booking = await service.book_appointment(**booking_payload())
    await service.cancel_appointment(booking.appointment.id)

    service.delete_appointment(booking.appointment.id)

    assert db.query(Appointment).count() == 0


async def test_get(service):
    booking = await service.book_appointment(**booking_payload())

    assert service.get_appointment(booking.appointment.id).order_id == booking.order.id


async def test_pagination(service):
    await _book_many(service, 25)

    page = service.list_appointments(page=2, limit=10)

    assert len(page.appointments) == 10
    assert page.current_page == 2
    assert page.total_pages == 3
    assert page.total_appointments == 25

    last = service.list_appointments(page=3, limit=10)
    assert len(last.appointments) == 5


async def test_default_page_and_sorting(service):
    booked = await _book_many(service, 12)

    page = service.list_appointments()

    assert len(page.appointments) == 10
    dates = [a.appointment_date for a in page.appointments]
    assert dates == sorted(dates)
    assert dates[0] == min(a.appointment_date for a in booked)


async def test_page_past_the_end_is_empty(service):
    await _book_many(service, 3)

    page = service.list_appointments(page=5, limit=10)

    assert page.appointments == []
    assert page.total_pages == 1
    assert page.total_appointments == 3


def test_empty_listing(service):
    page = service.list_appointments()

    assert page.appointments == []
    assert page.total_pages == 0
    assert page.total_appointments == 0


async def test_filter_by_status_and_test_type(service):
    booked = await _book_many(service, 4)
    await _book_many(service, 2, test_type="ultrasound")
    await service.cancel_appointment(booked[0].id)

    assert service.list_appointments(status="cancelled").total_appointments == 1
    assert service.list_appointments(status="pending").total_appointments == 5
    assert service.list_appointments(test_type="ultrasound").total_appointments == 2
    assert service.list_appointments(status="pending", test_type="xray").total_appointments == 3


async def test_search_is_case_insensitive_substring(service):
    await service.book_appointment(**booking_payload(
        name="Ravi Kumar", email="ravi@example.com", phone="9123456789",
        appointment_date=future_slot(hour=9),
    ))
    await service.book_appointment(**booking_payload(
        name="Meera Iyer", email="meera@clinic.org", phone="9988776655",
        appointment_date=future_slot(hour=10),
    ))

    assert service.list_appointments(search="KUMAR").total_appointments == 1
    assert service.list_appointments(search="clinic.org").total_appointments == 1
    assert service.list_appointments(search="887766").total_appointments == 1
    assert service.list_appointments(search="e").total_appointments == 2
    assert service.list_appointments(search="nobody").total_appointments == 0


async def test_search_wildcards_are_literal(service):
    await service.book_appointment(**booking_payload(name="Ravi Kumar"))

    assert service.list_appointments(search="%").total_appointments == 0
    assert service.list_appointments(search="R_vi").total_appointments == 0


async def test_date_range_is_inclusive(service):
    for day in (1, 2, 3, 4):
        await service.book_appointment(**booking_payload(appointment_date=f"2099-05-0{day}T10:00:00Z"))

    page = service.list_appointments(start_date="2099-05-02T10:00:00Z", end_date="2099-05-03T10:00:00Z")
    assert page.total_appointments == 2

    # bare end date covers the whole day
    page = service.list_appointments(start_date="2099-05-02", end_date="2099-05-03")
    assert [a.appointment_date for a in page.appointments] == [
        datetime(2099, 5, 2, 10, 0),
        datetime(2099, 5, 3, 10, 0),
    ]

    assert service.list_appointments(start_date="2099-05-03").total_appointments == 2
    assert service.list_appointments(end_date="2099-05-01").total_appointments == 1


@pytest.mark.parametrize("kwargs,message", [
    ({"status": "done"}, "invalid status"),
    ({"test_type": "blood"}, "invalid test type"),
    ({"start_date": "yesterday"}, "invalid date"),
    ({"start_date": "0001-01-01T00:00:00+05:00"}, "invalid date"),
    ({"end_date": "9999-12-31T23:00:00-05:00"}, "invalid date"),
    ({"page": 0}, "page must be at least 1"),
    ({"limit": 0}, "limit must be between 1 and 100"),
    ({"limit": 101}, "limit must be between 1 and 100"),
])
def test_invalid_listing_arguments(service, kwargs, message):
    with pytest.raises(ValidationError, match=message):
        service.list_appointments(**kwargs)


async def test_end_to_end_scenario(service, notifier):
    slot = (datetime.now(timezone.utc) + timedelta(days=10)).replace(microsecond=0).isoformat()

    first = await service.book_appointment(**booking_payload(test_type="xray", appointment_date=slot))
    assert first.appointment.amount == 1000
    assert first.appointment.status == "pending"

    with pytest.raises(ConflictError):
        await service.book_appointment(**booking_payload(
            name="Second Patient", email="second@example.com", test_type="xray", appointment_date=slot,
        ))

    other = await service.book_appointment(**booking_payload(
        name="Other Patient", email="other@example.com", test_type="ctscan", appointment_date=slot,
    ))

    order_id = first.order.id
    confirmed = await service.verify_payment(order_id, "pay_e2e", sign(order_id, "pay_e2e"))
    assert confirmed.status == "confirmed"
    assert confirmed.payment_status == "completed"

    cancelled = await service.cancel_appointment(other.appointment.id)
    assert cancelled.status == "cancelled"

    assert [m["to"] for m in notifier.sent] == ["asha.rao@example.com", "other@example.com"]
    assert notifier.sent[1]["subject"] == "Appointment Cancellation"
