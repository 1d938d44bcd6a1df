"""
ChargeSource API - FastAPI Main Application
Quote totals, catalogue browsing and product comparison
"""

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.config import config
from api.auth import verify_token
from api.integrations.supabase_client import SupabaseClient, SupabaseError, get_supabase_client
from api.security_config import (
    EXPOSE_HEADERS,
    RATE_LIMIT_DEFAULT,
    get_allowed_hosts,
    get_allowed_origins,
)

# Routers
from api.routers import catalog, quotes

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.APP_LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Application metadata
APP_NAME = "ChargeSource API"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Quote totals, catalogue and product comparison for EV-charging installations"

class ErrorResponse(BaseModel):
    """Standard error response model"""
    code: str
    message: str
    hint: Optional[str] = None
    traceId: str
    meta: Dict[str, Any]

class AppContext:
    """Application context manager"""
    def __init__(self):
        self.start_time = time.time()
        self.ready = False

    async def startup(self):
        """Check upstream availability; the API still starts when Supabase is down"""
        logger.info("Starting ChargeSource API...")

        health = await get_supabase_client().check_health()
        if health.get("status") != "ok":
            logger.warning(f"Supabase not reachable at startup: {health.get('error')}")

        self.ready = True
        logger.info("ChargeSource API started successfully")

    async def shutdown(self):
        """Cleanup application resources"""
        logger.info("Shutting down ChargeSource API...")
        self.ready = False
        logger.info("ChargeSource API shut down successfully")

# Initialize application context
app_context = AppContext()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    await app_context.startup()
    yield
    await app_context.shutdown()

# Create FastAPI application
app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description=APP_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Configure CORS with whitelist
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=EXPOSE_HEADERS
)

# Configure trusted hosts with whitelist
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=get_allowed_hosts()
)

# Configure rate limiting
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[RATE_LIMIT_DEFAULT],
    storage_uri=os.getenv("REDIS_URL", "memory://")
)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", str(uuid.uuid4()))


# Rate limit exceeded handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded"""
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=jsonable_encoder(ErrorResponse(
            code="RATE_LIMIT_EXCEEDED",
            message="Too many requests",
            hint="Please wait before making more requests",
            traceId=_trace_id(request),
            meta={"dedupKey": f"rate_limit_{request.url.path}_{time.time()}"}
        ))
    )

# Middleware for trace ID injection
@app.middleware("http")
async def inject_trace_id(request: Request, call_next):
    """Inject trace ID into all requests and responses"""
    trace_id = request.headers.get("X-Trace-Id", str(uuid.uuid4()))

    # Add trace ID to logger context
    logger_adapter = logging.LoggerAdapter(logger, {"trace_id": trace_id})
    request.state.logger = logger_adapter
    request.state.trace_id = trace_id

    # Process request
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    # Add headers to response
    response.headers["X-Trace-Id"] = trace_id
    response.headers["X-Process-Time"] = str(process_time)

    # Log request completion
    logger_adapter.info(
        f"{request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s"
    )

    return response

# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(ErrorResponse(
            code="VALIDATION_ERROR",
            message="Invalid request parameters",
            hint=str(exc.errors()[0]["msg"]) if exc.errors() else None,
            traceId=_trace_id(request),
            meta={"dedupKey": f"validation_{request.url.path}_{time.time()}"}
        ))
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(ErrorResponse(
            code=exc.detail.get("code", "HTTP_ERROR") if isinstance(exc.detail, dict) else "HTTP_ERROR",
            message=exc.detail.get("message", str(exc.detail)) if isinstance(exc.detail, dict) else str(exc.detail),
            hint=exc.detail.get("hint") if isinstance(exc.detail, dict) else None,
            traceId=_trace_id(request),
            meta={"dedupKey": f"http_{request.url.path}_{exc.status_code}"}
        )),
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(SupabaseError)
async def supabase_exception_handler(request: Request, exc: SupabaseError):
    """Handle upstream database failures"""
    logger.error(f"Upstream error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=jsonable_encoder(ErrorResponse(
            code="UPSTREAM_ERROR",
            message="The data service is unavailable",
            hint="Retry shortly; contact support with the trace ID if it persists",
            traceId=_trace_id(request),
            meta={"dedupKey": f"upstream_{request.url.path}_{time.time()}"}
        ))
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=jsonable_encoder(ErrorResponse(
            code="INTERNAL_ERROR",
            message="An internal error occurred",
            hint="Please contact support with the trace ID",
            traceId=_trace_id(request),
            meta={"dedupKey": f"internal_{request.url.path}_{time.time()}"}
        ))
    )

# Health check endpoint
@app.get("/healthz")
async def health_check():
    """Liveness only; no upstream calls"""
    return JSONResponse(
        content={
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.time() - app_context.start_time
        }
    )

# Readiness check endpoint
@app.get("/readyz")
async def readiness_check(request: Request, db: SupabaseClient = Depends(get_supabase_client)):
    """
    Readiness check endpoint with Supabase validation.
    Response: {"status":"ok","supabase":"ok","ts":"<UTC-ISO>","traceId":"..."}
    """
    trace_id = _trace_id(request)

    if not app_context.ready:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "message": "Application is starting up or shutting down",
                "ts": datetime.now(timezone.utc).isoformat(),
                "traceId": trace_id
            }
        )

    supabase_health = await db.check_health()

    if supabase_health.get("status") != "ok":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "degraded",
                "supabase": supabase_health.get("status"),
                "supabase_error": supabase_health.get("error"),
                "ts": datetime.now(timezone.utc).isoformat(),
                "traceId": trace_id
            }
        )

    return JSONResponse(
        content={
            "status": "ok",
            "supabase": "ok",
            "ts": datetime.now(timezone.utc).isoformat(),
            "traceId": trace_id
        }
    )

# Include routers with JWT authentication
# All API endpoints require authentication except health/ready/root
app.include_router(quotes.router, dependencies=[Depends(verify_token)])
app.include_router(catalog.router, dependencies=[Depends(verify_token)])

# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
        "docs": "/docs",
        "health": "/healthz",
        "ready": "/readyz"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=config.APP_PORT,
        reload=config.APP_DEBUG,
        log_level=config.APP_LOG_LEVEL.lower()
    )
