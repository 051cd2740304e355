"""
FastAPI dependencies wiring the workflows to their collaborators
"""
from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .database import get_db
from .services.booking import AppointmentService
from .services.notifications import EmailNotifier
from .services.payment_gateway import RazorpayGateway


def get_payment_gateway(request: Request) -> RazorpayGateway:
    """Gateway built once per process and kept on app.state"""
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        gateway = RazorpayGateway.from_settings(get_settings())
        request.app.state.payment_gateway = gateway
    return gateway


def get_email_notifier(request: Request) -> EmailNotifier:
    notifier = getattr(request.app.state, "email_notifier", None)
    if notifier is None:
        notifier = EmailNotifier.from_settings(get_settings())
        request.app.state.email_notifier = notifier
    return notifier


def get_appointment_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    notifier: EmailNotifier = Depends(get_email_notifier),
    settings: Settings = Depends(get_settings),
) -> AppointmentService:
    # emails go out after the response is sent
    return AppointmentService(db, gateway, notifier, settings, dispatch=background_tasks.add_task)
