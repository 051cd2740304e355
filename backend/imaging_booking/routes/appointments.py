"""
Appointments API router
"""
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ..dependencies import get_appointment_service
from ..models.appointment import TEST_NAMES, TEST_PRICES
from ..services.booking import AppointmentService, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/appointments", tags=["appointments"])


# ==================== Pydantic Schemas ====================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AppointmentCreate(CamelModel):
    # Everything optional here: the workflow reports the first missing field
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    test_type: Optional[str] = None
    appointment_date: Optional[str] = None
    notes: Optional[str] = None


class PaymentVerification(CamelModel):
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    signature: Optional[str] = None


class AppointmentResponse(CamelModel):
    id: str
    name: str
    email: str
    phone: str
    test_type: str
    appointment_date: datetime
    notes: Optional[str] = None
    status: str
    amount: int
    order_id: str
    payment_status: str
    payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("appointment_date")
    @classmethod
    def mark_utc(cls, value: datetime) -> datetime:
        # stored as naive UTC
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class OrderResponse(CamelModel):
    id: str
    amount: int  # paise
    currency: str


class BookingResponse(CamelModel):
    appointment: AppointmentResponse
    order: OrderResponse


class AppointmentListResponse(CamelModel):
    appointments: List[AppointmentResponse]
    current_page: int
    total_pages: int
    total_appointments: int


class ProcedureResponse(CamelModel):
    key: str
    name: str
    price: int


class MessageResponse(BaseModel):
    message: str


# ==================== API Endpoints ====================

@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    status: Optional[str] = Query(None, description="pending, confirmed or cancelled"),
    test_type: Optional[str] = Query(None, alias="testType"),
    search: Optional[str] = Query(None, description="Name, email or phone fragment"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE, description=f"1 to {MAX_PAGE_SIZE}"),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments with filters, search and pagination"""
    result = service.list_appointments(
        status=status,
        test_type=test_type,
        search=search,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(a) for a in result.appointments],
        current_page=result.current_page,
        total_pages=result.total_pages,
        total_appointments=result.total_appointments,
    )


@router.get("/test-types", response_model=List[ProcedureResponse])
async def list_test_types():
    """Bookable procedures and their prices"""
    return [
        ProcedureResponse(key=key, name=TEST_NAMES[key], price=price)
        for key, price in TEST_PRICES.items()
    ]


@router.post("", response_model=BookingResponse, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment and open a payment order"""
    result = await service.book_appointment(
        name=data.name,
        email=data.email,
        phone=data.phone,
        test_type=data.test_type,
        appointment_date=data.appointment_date,
        notes=data.notes,
    )
    return BookingResponse(
        appointment=AppointmentResponse.model_validate(result.appointment),
        order=OrderResponse(id=result.order.id, amount=result.order.amount, currency=result.order.currency),
    )


@router.post("/verify-payment", response_model=AppointmentResponse)
async def verify_payment(
    data: PaymentVerification,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Verify the checkout signature and confirm the appointment"""
    appointment = await service.verify_payment(data.order_id, data.payment_id, data.signature)
    return AppointmentResponse.model_validate(appointment)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    return AppointmentResponse.model_validate(service.get_appointment(appointment_id))


@router.patch("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.cancel_appointment(appointment_id)
    return AppointmentResponse.model_validate(appointment)


@router.delete("/{appointment_id}", response_model=MessageResponse)
async def delete_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Permanently remove an appointment"""
    service.delete_appointment(appointment_id)
    return MessageResponse(message="Appointment deleted successfully")
