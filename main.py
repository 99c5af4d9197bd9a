import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import ALLOWED_ORIGINS, LOG_LEVEL
from app.core.exceptions import MarketDataError, error_code_for, http_status_for
from app.core.logging import get_logger, set_trace_id, setup_logging
from app.routers.cron import router as cron_router
from app.routers.expenses import router as expenses_router
from app.routers.inventory import router as inventory_router
from app.routers.listings import router as listings_router
from app.routers.market import router as market_router
from app.routers.pricing import router as pricing_router
from app.routers.reports import router as reports_router

setup_logging(level=LOG_LEVEL)
logger = get_logger(__name__)

# =============================================================================
# APP CONFIGURATION
# =============================================================================

API_VERSION = "1.0.0"
API_TITLE = "Resale Market API"

app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description="Resale portfolio & multi-provider market data API",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# =============================================================================
# MIDDLEWARE - Request tracking & timing
# =============================================================================

@app.middleware("http")
async def add_request_context(request: Request, call_next):
    """Add trace_id and timing to all requests."""
    trace_id = set_trace_id(request.headers.get("X-Request-ID"))
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    response.headers["X-Request-ID"] = trace_id
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    if request.url.path != "/health":
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

    return response


# =============================================================================
# ERROR HANDLERS - {"error": ..., "message": ...}
# =============================================================================

@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError):
    status_code = http_status_for(exc)
    logger.warning(
        f"Request failed: {exc}",
        provider=exc.provider,
        sku=exc.sku,
        status_code=status_code,
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error_code_for(exc), "message": exc.message},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": "http_error", "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()))
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "validation_error",
            "message": f"{location}: {first.get('msg', 'invalid request')}",
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "internal_error", "message": "Internal server error"},
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(market_router)
app.include_router(cron_router)
app.include_router(inventory_router)
app.include_router(listings_router)
app.include_router(expenses_router)
app.include_router(reports_router)
app.include_router(pricing_router)


# =============================================================================
# SYSTEM ENDPOINTS - Health & Info
# =============================================================================

@app.get("/health")
def health():
    """Health check endpoint for load balancers & monitoring."""
    return {"status": "ok"}


@app.get("/v1/info")
def info():
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "providers": ["stockx", "alias"],
    }
