"""
Homestay Registration Backend - Main Application
"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import applications, compliance, da, dtdo, payments, settings as settings_api
from .core.config import settings
from .core.database import engine
from .core.correlation import CORRELATION_HEADER, CorrelationIdMiddleware
from .core.errors import WorkflowError, problem_response, workflow_error_handler
from .core.logging_config import setup_logging

# Setup logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Initialize Sentry if configured
if settings.SENTRY_DSN:
    try:
        import sentry_sdk
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.SENTRY_ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        )
        logger.info("Sentry monitoring initialized", extra={"correlation_id": "startup"})
    except ImportError:
        logger.warning("Sentry SDK not installed, monitoring disabled", extra={"correlation_id": "startup"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown"""
    logger.info("=" * 80, extra={"correlation_id": "startup"})
    logger.info("Homestay Registration Backend starting...", extra={"correlation_id": "startup"})
    logger.info(f"Environment: {settings.ENVIRONMENT}", extra={"correlation_id": "startup"})
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}", extra={"correlation_id": "startup"})
    logger.info(
        f"Capacity: {settings.MAX_ROOMS_ALLOWED} rooms / {settings.MAX_BEDS_ALLOWED} beds",
        extra={"correlation_id": "startup"},
    )
    logger.info("=" * 80, extra={"correlation_id": "startup"})

    # Verify database connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified", extra={"correlation_id": "startup"})
    except Exception as e:
        logger.error(f"Database connection failed: {e}", extra={"correlation_id": "startup"})

    yield
    logger.info("Homestay Registration Backend shutting down...", extra={"correlation_id": "shutdown"})


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.ENABLE_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_REDOC else None,
)


def custom_openapi():
    """Custom OpenAPI schema with security definitions"""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=settings.API_TITLE,
        version="0.1.0",
        description=settings.API_DESCRIPTION,
        routes=app.routes,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "JWT token from the identity provider (sub, role, district claims)",
        }
    }

    # Apply security to all endpoints
    for path in openapi_schema["paths"].values():
        for operation in path.values():
            if isinstance(operation, dict) and "tags" in operation:
                operation["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_HEADER],
)


# Exception handlers (every error leaves as a problem document)
app.add_exception_handler(WorkflowError, workflow_error_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = problem_response(
        request,
        status=exc.status_code,
        code="http_error",
        title="Request failed",
        detail=exc.detail,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return problem_response(
        request,
        status=422,
        code="request_invalid",
        title="Invalid request",
        detail="The request body or parameters are invalid",
        extra={"errors": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error: {exc}", exc_info=True)
    return problem_response(
        request,
        status=500,
        code="internal_error",
        title="Internal server error",
        detail="An unexpected error occurred",
    )


# Include routers
app.include_router(applications.router, tags=["Applications"])
app.include_router(da.router, tags=["Dealing Assistant"])
app.include_router(dtdo.router, tags=["DTDO"])
app.include_router(payments.router, tags=["Payments"])
app.include_router(compliance.router, tags=["Compliance"])
app.include_router(settings_api.router, tags=["Settings"])


@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check with DB verification

    Returns 200 if healthy, 503 if unhealthy
    """
    health = {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": "0.1.0",
        "database": "unknown",
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health["database"] = "connected"
    except Exception as e:
        health["database"] = f"disconnected: {str(e)}"
        health["status"] = "unhealthy"
        logger.error(f"Health check: database unhealthy: {e}", extra={"correlation_id": "health"})

    status_code = 200 if health["status"] == "healthy" else 503
    return JSONResponse(content=health, status_code=status_code)


@app.get("/", tags=["System"])
async def root():
    """Root endpoint"""
    return {
        "service": settings.API_TITLE,
        "version": "0.1.0",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if settings.ENABLE_DOCS else None,
        "health": "/health",
    }
