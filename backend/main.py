"""School Staffing — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from backend.auth.router import router as auth_router
from backend.common.exceptions import register_exception_handlers
from backend.common.rate_limit import limiter
from backend.config import settings
from backend.database import engine
from backend.employees.router import router as employees_router
from backend.invoices.router import router as invoices_router
from backend.leave.router import router as leave_router
from backend.ledger.router import router as ledger_router
from backend.payments.router import router as payments_router
from backend.postings.router import router as postings_router
from backend.schools.router import router as schools_router

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting School Staffing API (%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="School Staffing",
        description="Trainer postings, school staffing, invoicing and payments",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(employees_router, prefix="/api/v1/employees", tags=["employees"])
    app.include_router(schools_router, prefix="/api/v1/schools", tags=["schools"])
    app.include_router(
        postings_router, prefix="/api/v1/employee-postings", tags=["employee-postings"],
    )
    app.include_router(leave_router, prefix="/api/v1/leaves", tags=["leave"])
    app.include_router(invoices_router, prefix="/api/v1/invoices", tags=["invoices"])
    app.include_router(payments_router, prefix="/api/v1/payments", tags=["payments"])
    app.include_router(ledger_router, prefix="/api/v1/ledger", tags=["ledger"])

    return app


app = create_app()
