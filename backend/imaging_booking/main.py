"""
FastAPI application entry point
Diagnostic Imaging Booking API
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .admin import setup_admin
from .config import get_settings
from .database import engine, init_db
from .exceptions import BookingError
from .routes.appointments import router as appointments_router
from .services.notifications import EmailNotifier
from .services.payment_gateway import RazorpayGateway

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.payment_gateway = RazorpayGateway.from_settings(settings)
    app.state.email_notifier = EmailNotifier.from_settings(settings)
    if not app.state.email_notifier.configured:
        logger.warning("SMTP is not configured, patient emails will be skipped")
    logger.info(f"Imaging booking API started ({settings.ENVIRONMENT})")
    yield


app = FastAPI(
    title="Diagnostic Imaging Booking API",
    description="Appointment booking with Razorpay payments",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else [settings.SITE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session Middleware (admin panel)
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Unparseable query or body values get the same short message shape as workflow errors"""
    errors = exc.errors()
    fields = [
        str(part) for part in (errors[0]["loc"] if errors else ())
        if not isinstance(part, int) and part not in ("body", "query", "path")
    ]
    message = f"invalid {fields[-1]}" if fields else "invalid request"
    logger.debug(f"Request validation failed on {request.url.path}: {errors}")
    return JSONResponse(status_code=400, content={"detail": message})


app.include_router(appointments_router)

setup_admin(app, engine)


@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT}


def run():
    import uvicorn
    uvicorn.run("imaging_booking.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)


if __name__ == "__main__":
    run()
