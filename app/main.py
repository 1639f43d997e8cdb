import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from routers import bookings, notifications, venues
from app.db import init_db
from app.deps import get_admin_policy, get_principal
from app.errors import (
    BookingError,
    BookingNotFound,
    ConflictError,
    InvalidTransition,
    NotAuthorized,
    StoreUnavailable,
    ValidationError,
)
from app.log_config import configure_logging
from app.policy import EmailAllowListPolicy, Principal
from app.schemas import PrincipalOut
from app.settings import get_settings

logger = logging.getLogger(__name__)

# Most specific first; first isinstance match wins
ERROR_STATUS = (
    (NotAuthorized, 403),
    (ValidationError, 400),
    (ConflictError, 409),
    (InvalidTransition, 409),
    (BookingNotFound, 404),
    (StoreUnavailable, 503),
)

app = FastAPI(title="Venue Booking API", version="0.1.0")

app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
app.include_router(venues.router, prefix="/venues", tags=["venues"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])


@app.exception_handler(BookingError)
def booking_error_handler(request: Request, exc: BookingError):
    status_code = next((code for kind, code in ERROR_STATUS if isinstance(exc, kind)), 500)
    headers = {"Retry-After": "1"} if isinstance(exc, StoreUnavailable) else None
    return JSONResponse(status_code=status_code, content={"detail": exc.message}, headers=headers)


@app.on_event("startup")
def on_startup():
    settings = get_settings()
    configure_logging(settings.log_level)
    if settings.skip_db_init:
        return
    init_db()
    logger.info("database ready")


@app.get("/")
def root():
    return {"ok": True, "service": "venue-booking-api"}


@app.get("/me", response_model=PrincipalOut)
def me(
    principal: Principal = Depends(get_principal),
    policy: EmailAllowListPolicy = Depends(get_admin_policy),
):
    return PrincipalOut(
        id=principal.id,
        email=principal.email,
        display_name=principal.display_name,
        is_admin=policy.is_admin(principal),
    )
