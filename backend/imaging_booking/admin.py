"""
Staff admin panel
Access: http://localhost:3000/admin
Login: ADMIN_USERNAME / ADMIN_PASSWORD from .env
"""
import hmac

from sqladmin import Admin, ModelView
from sqladmin.authentication import AuthenticationBackend
from starlette.requests import Request
from .config import get_settings
from .models.appointment import Appointment

settings = get_settings()


class AdminAuth(AuthenticationBackend):
    """Single-account password login"""

    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = str(form.get("username") or "")
        password = str(form.get("password") or "")

        if hmac.compare_digest(username, settings.ADMIN_USERNAME) and \
                hmac.compare_digest(password, settings.ADMIN_PASSWORD):
            request.session.update({"authenticated": True})
            return True
        return False

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        return request.session.get("authenticated", False)


class AppointmentAdmin(ModelView, model=Appointment):
    """
    Appointments
    Read-only apart from delete: status changes go through the API workflows
    """
    name = "Appointment"
    name_plural = "Appointments"
    icon = "fa-solid fa-calendar-check"

    can_create = False
    can_edit = False
    can_delete = True
    can_view_details = True

    column_list = [
        Appointment.id,
        Appointment.name,
        Appointment.test_type,
        Appointment.appointment_date,
        Appointment.status,
        Appointment.payment_status,
        Appointment.amount,
        Appointment.created_at
    ]
    column_searchable_list = [Appointment.name, Appointment.email, Appointment.phone]
    column_sortable_list = [Appointment.appointment_date, Appointment.created_at, Appointment.status]
    column_default_sort = [(Appointment.appointment_date, False)]

    column_labels = {
        "id": "ID",
        "name": "Patient",
        "email": "Email",
        "phone": "Phone",
        "test_type": "Test",
        "appointment_date": "Date (UTC)",
        "status": "Status",
        "payment_status": "Payment",
        "amount": "Amount (₹)",
        "order_id": "Order ID",
        "payment_id": "Payment ID",
        "notes": "Notes",
        "created_at": "Created"
    }


def setup_admin(app, engine):
    """Mount the admin panel"""
    authentication_backend = AdminAuth(secret_key=settings.SECRET_KEY)

    admin = Admin(
        app,
        engine,
        authentication_backend=authentication_backend,
        title="Imaging Booking Admin",
        base_url="/admin"
    )

    admin.add_view(AppointmentAdmin)

    return admin
