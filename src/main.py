"""
Wardrobe Backend - Main Application

FastAPI application with:
- Garment upload pipeline (storage -> remove.bg -> vision -> database)
- Wardrobe listing/deletion and fashion advice endpoints
- Structured logging with structlog
- Prometheus metrics
- Global exception handling
- Storage abstraction (Supabase + local)
"""

import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src.core.config import settings
from src.core.database import create_db_and_tables
from src.core.logging import setup_logging, get_logger, LogContext
from src.core.exceptions import register_exception_handlers, GlobalExceptionMiddleware
from src.core.metrics import set_app_info, http_requests_total, http_request_duration_seconds
from src.core.storage import create_storage
from src.engines.wardrobe.providers import BackgroundRemovalClient, CompletionClient
from src.api import api_router


# =============================================================================
# Initialize Logging
# =============================================================================
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT_JSON
)
logger = get_logger(__name__)


# =============================================================================
# Lifespan Handler
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - builds the provider clients once."""
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    await create_db_and_tables()
    logger.info("database_initialized")

    app.state.storage = create_storage(settings)
    app.state.background_removal = BackgroundRemovalClient(
        api_key=settings.REMOVEBG_API_KEY,
        api_url=settings.REMOVEBG_API_URL
    )
    app.state.completion = CompletionClient(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        max_tokens=settings.AI_MAX_TOKENS
    )

    if not settings.REMOVEBG_API_KEY:
        logger.warning("removebg_api_key_missing")

    set_app_info(
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )
    logger.info("application_ready", model=settings.OPENAI_MODEL)

    yield

    # Shutdown
    logger.info("application_shutting_down")
    await app.state.storage.aclose()
    await app.state.background_removal.aclose()
    await app.state.completion.aclose()
    logger.info("application_shutdown_complete")


# =============================================================================
# Create FastAPI Application
# =============================================================================
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Wardrobe backend for garment photos and fashion advice.

    - **Upload**: background removal (remove.bg) + garment classification (vision model)
    - **Wardrobe**: list and delete stored garments
    - **Fashion**: styling answers grounded on the user's wardrobe
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(GlobalExceptionMiddleware)

# CORS
cors_origins = settings.CORS_ORIGINS.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    """Tag every request with an id for logging and track timing for metrics."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start_time = time.time()

    with LogContext(request_id=request_id):
        response = await call_next(request)

    duration = time.time() - start_time
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)

    http_request_duration_seconds.labels(
        method=request.method,
        endpoint=endpoint
    ).observe(duration)

    http_requests_total.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code
    ).inc()

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(duration)

    return response


# =============================================================================
# Register Exception Handlers
# =============================================================================
register_exception_handlers(app)


# =============================================================================
# Include API Routers
# =============================================================================
app.include_router(api_router)


# =============================================================================
# Static Files
# =============================================================================

# Serve locally stored images when Supabase is not configured
if not settings.use_supabase_storage and os.path.exists(settings.LOCAL_STORAGE_PATH):
    app.mount("/static/storage", StaticFiles(directory=settings.LOCAL_STORAGE_PATH), name="storage")


# =============================================================================
# Root Endpoints
# =============================================================================

@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/api/docs",
        "metrics": "/api/metrics"
    }


@app.get("/health", tags=["health"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


# =============================================================================
# Development Server
# =============================================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
