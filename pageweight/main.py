from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import time
from datetime import datetime, UTC

from .config import settings
from .dependencies import (
    get_app_state,
    get_page_fetcher,
    add_request_context,
    increment_request_counter,
    ApplicationState
)
from .core.exceptions import (
    PageWeightException,
    get_http_status_code
)
from .models.responses import ErrorResponse, HealthResponse
from .utils.logger import setup_logging, get_logger, get_request_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)


def _error_response(request: Request, status_code: int, error: str, message: str, details=None, headers=None) -> JSONResponse:
    """Render an ErrorResponse carrying the current request ID."""
    error_response = ErrorResponse(
        error=error,
        message=message,
        details=details,
        timestamp=datetime.now(UTC),
        request_id=getattr(request.state, "request_id", None)
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
        headers=headers
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")

    yield

    # Shutdown
    logger.info("Shutting down application")
    fetcher = get_page_fetcher()
    try:
        await fetcher.close()
    except Exception as e:
        logger.warning(f"HTTP client cleanup error: {str(e)}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Estimates page load time, weight and request count from a page's HTML",
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,  # Hide docs in production
    redoc_url="/redoc" if settings.debug else None,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging and context middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with proper context."""
    start_time = time.time()
    request_id = await add_request_context(request)
    request_logger = get_request_logger()

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        request_logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} in {process_time:.3f}s",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": str(request.url.path),
                "status_code": response.status_code,
                "process_time": process_time,
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)
        return response

    except Exception as e:
        process_time = time.time() - start_time
        request_logger.error(
            f"Request failed: {str(e)} after {process_time:.3f}s",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": str(request.url.path),
                "process_time": process_time,
                "client_ip": request.client.host if request.client else "unknown"
            },
            exc_info=True
        )
        raise


# Global exception handler for our custom exceptions
@app.exception_handler(PageWeightException)
async def page_weight_exception_handler(request: Request, exc: PageWeightException):
    """Handle custom application exceptions."""
    status_code = get_http_status_code(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(f"Application error: {exc.message} {exc.details}")

    headers = None
    if "retry_after" in exc.details:
        headers = {"Retry-After": str(exc.details["retry_after"])}

    return _error_response(request, status_code, exc.error_code, exc.message, exc.details, headers)


# Global exception handler for HTTP exceptions
@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent format."""
    logger.warning(f"HTTP error: {exc.status_code} - {exc.detail}")
    return _error_response(request, exc.status_code, "HTTP_ERROR", str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies in the standard error format."""
    logger.warning(f"Request validation failed: {exc.errors()}")
    return _error_response(
        request,
        422,
        "VALIDATION_ERROR",
        "Request body is invalid",
        {"errors": [{"loc": list(err.get("loc", [])), "msg": err.get("msg")} for err in exc.errors()]}
    )


# Global exception handler for unexpected errors
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)

    # Don't expose internal errors in production
    message = str(exc) if settings.debug else "Internal server error"
    return _error_response(request, 500, "INTERNAL_ERROR", message)


# Root endpoint
@app.get("/", tags=["General"])
async def root():
    """Root endpoint with basic application information."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "running",
        "docs_url": "/docs" if settings.debug else "Documentation not available in production"
    }


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(
    include_details: bool = False,
    app_state: ApplicationState = Depends(get_app_state),
    request_count: int = Depends(increment_request_counter)
):
    """
    Health check endpoint.

    Args:
        include_details: Whether to include detailed system information
    """
    uptime = app_state.get_uptime()

    health_response = HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=settings.app_version,
        uptime=uptime
    )

    if include_details:
        health_response.details = {
            "environment": settings.environment,
            "debug_mode": settings.debug,
            "total_requests": request_count,
            "analyses_completed": app_state.analyses_completed,
            "uptime_formatted": f"{uptime:.2f} seconds",
            "settings": {
                "rate_limit_requests": settings.rate_limit_requests,
                "rate_limit_window": settings.rate_limit_window,
                "request_timeout": settings.request_timeout,
                "max_html_size": settings.max_html_size
            }
        }

    return health_response


# API version info
@app.get("/api/version", tags=["General"])
async def get_version():
    """Get API version information."""
    return {
        "api_version": "1.0.0",
        "app_version": settings.app_version,
        "environment": settings.environment,
        "features": {
            "static_analysis": True,
            "markup_estimate": True,
            "browser_analysis": False
        }
    }


# Include routers
from .api.routes import analyze, health

app.include_router(analyze.router, prefix=settings.api_v1_prefix, tags=["Analysis"])
app.include_router(health.router, prefix=settings.api_v1_prefix, tags=["Health Extended"])


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on {settings.host}:{settings.port}")

    uvicorn.run(
        "pageweight.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
