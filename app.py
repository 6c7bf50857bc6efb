"""
Course Marketplace API
Catalog, enrollment, lesson progress, notes, reviews, certificates and dashboards
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from db import check_database, engine
from models import Base
from routes import categories, certificates, courses, dashboard, enrollments, lessons, notes, profile, progress, reviews
from schemas.api_models import COMMON_RESPONSES
from utils.error_handling import ApiError
from utils.structured_logging import (
    CORRELATION_HEADER,
    REQUEST_ID_HEADER,
    LogCategory,
    configure_logging,
    correlation_id_var,
    get_logger,
    log_request_middleware,
)

API_VERSION = "1.0.0"

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("Database schema ensured", category=LogCategory.DATABASE)
    yield


app = FastAPI(
    title="Course Marketplace API",
    description="Authorization-scoped REST resources for an online course marketplace",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS configuration - Load from environment
origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID", "Accept", "Origin"],
    expose_headers=["X-Correlation-ID", "X-Request-ID"],
)


@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    """Add correlation IDs and structured logging to all requests"""
    return await log_request_middleware(request, call_next)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{type(exc).__name__}: {exc.message}",
        category=LogCategory.ERROR,
        request_method=request.method,
        request_path=request.url.path,
        response_status=exc.status_code,
        user_id=getattr(request.state, "user_id", None),
        extra={"code": exc.code},
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.warning(
        "Validation error",
        category=LogCategory.ERROR,
        request_method=request.method,
        request_path=request.url.path,
        extra={"errors": errors},
    )
    first = errors[0] if errors else {"field": "request", "message": "Invalid input"}
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"{first['field']}: {first['message']}", "code": "INVALID_INPUT"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} error", request_path=request.url.path, response_status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


def _trace_headers(request: Request) -> dict:
    # The logging middleware is unwound before this handler runs
    headers = {}
    correlation_id = getattr(request.state, "correlation_id", None) or correlation_id_var.get()
    if correlation_id:
        headers[CORRELATION_HEADER] = correlation_id
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        headers[REQUEST_ID_HEADER] = request_id
    return headers


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    # The raw message reaches the client; see DESIGN.md for the hardening note
    logger.critical(
        "Unexpected server error",
        category=LogCategory.ERROR,
        exception=exc,
        request_method=request.method,
        request_path=request.url.path,
        user_id=getattr(request.state, "user_id", None),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": f"Internal server error: {exc}", "code": "INTERNAL_ERROR"},
        headers=_trace_headers(request),
    )


for module, tag in (
    (categories, "Categories"),
    (courses, "Courses"),
    (lessons, "Lessons"),
    (enrollments, "Enrollments"),
    (reviews, "Reviews"),
    (certificates, "Certificates"),
    (notes, "Lesson Notes"),
    (progress, "Lesson Progress"),
    (profile, "Profile"),
    (dashboard, "Dashboards"),
):
    app.include_router(module.router, prefix="/api", tags=[tag], responses=COMMON_RESPONSES)


@app.get("/", tags=["System"], summary="API Information")
async def root():
    return {
        "name": "Course Marketplace API",
        "version": API_VERSION,
        "status": "operational",
        "documentation": {"swagger": "/docs", "redoc": "/redoc", "openapi_spec": "/openapi.json"},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health", tags=["System"], summary="Health Check")
def health_check():
    database_ok = check_database(engine)
    return JSONResponse(
        status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if database_ok else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": API_VERSION,
            "checks": {"database": "operational" if database_ok else "unavailable"},
        },
    )
