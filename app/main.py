import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.config import settings
from app.core.exceptions import OrderManagementError
from app.database import async_session_factory, init_db
from app.jobs.scheduler import start_scheduler, shutdown_scheduler
from app.services.auth_service import AuthService


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def auto_seed_admin():
    """Create the FIRST_ADMIN_* user when the users table is empty."""
    async with async_session_factory() as session:
        try:
            await AuthService(session).bootstrap_admin()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Admin bootstrap failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Create tables
    - Seed the first admin
    - Start background scheduler
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    await init_db()
    await auto_seed_admin()

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    shutdown_scheduler()
    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Authentication", "description": "Registration, login and JWT access tokens"},
    {"name": "Customers", "description": "Customer profiles and order aggregates"},
    {"name": "Products", "description": "Product catalog and stock"},
    {"name": "Orders", "description": "Order lifecycle, items, payment status"},
    {"name": "Deliveries", "description": "Delivery records and public tracking"},
    {"name": "Health", "description": "Service health"},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="REST API for customers, products, orders and deliveries.",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


# ==================== ERROR HANDLERS ====================

@app.exception_handler(OrderManagementError)
async def domain_exception_handler(request: Request, exc: OrderManagementError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={"message": message, "errors": jsonable_encoder(errors)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log the traceback server-side; never return it."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ==================== HEALTH ====================

@app.get("/health", tags=["Health"])
@app.get("/api/v1/health", tags=["Health"], include_in_schema=False)
async def health_check():
    """Health check endpoint with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = "error"

    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status
