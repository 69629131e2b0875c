"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import availability, bookings, cancellations, catalog, wallet
from app.core.config import settings
from app.core.exceptions import BookingPlatformError, ValidationError
from app.services.scheduler import pending_booking_sweeper

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Padel Booking API")
    logger.info(f"Debug mode: {settings.DEBUG}")

    await pending_booking_sweeper.start()

    yield

    # Shutdown
    logger.info("Shutting down Padel Booking API")
    await pending_booking_sweeper.stop()


# Create FastAPI app
app = FastAPI(
    title="Padel Booking API",
    description="Book padel courts, invite players, pay and manage cancellations",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _failure(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code},
    )


@app.exception_handler(BookingPlatformError)
async def booking_error_handler(request: Request, exc: BookingPlatformError):
    logger.info(f"{request.method} {request.url.path} failed: {exc.code} ({exc.message})")
    return _failure(exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "")
    else:
        message = "The submitted data is not valid"
    return _failure(ValidationError.status_code, message, ValidationError.code)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _failure(500, "Something went wrong, please try again", "internal_error")


# Include routers
app.include_router(catalog.router)
app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(cancellations.router)
app.include_router(wallet.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "scheduler_running": pending_booking_sweeper.running,
    }
