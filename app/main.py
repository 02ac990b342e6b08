"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Builds the store and the services bound to it
- Registers API routes
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import timedelta
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.store import create_store
from app.services.account_service import AccountService
from app.services.catalogue_service import CatalogueService
from app.services.loan_ledger import LoanLedger
from app.services.seed_service import seed_default_data
from app.api import auth, documents, admin

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("🚀 Starting Médiathèque application...")

    try:
        logger.info("Validating configuration...")
        validate_settings()
        logger.info("✅ Configuration validated")

        store = create_store(settings.STORE_BACKEND)
        await store.connect()
        logger.info(f"✅ Store connected ({settings.STORE_BACKEND})")

        await store.create_indexes()

        app.state.store = store
        app.state.ledger = LoanLedger(
            store,
            loan_period=timedelta(days=settings.LOAN_PERIOD_DAYS),
        )
        app.state.accounts = AccountService(
            store,
            default_borrow_limit=settings.DEFAULT_BORROW_LIMIT,
            min_password_length=settings.MIN_PASSWORD_LENGTH,
            session_timeout_minutes=settings.SESSION_TIMEOUT_MINUTES,
        )
        app.state.catalogue = CatalogueService(store)

        if settings.SEED_DEFAULT_DATA:
            seeded = await seed_default_data(app.state.accounts, app.state.catalogue, settings)
            logger.info(f"Seed data: {seeded}")

        is_healthy = await store.ping()
        if not is_healthy:
            logger.warning("⚠️ Store health check failed during startup")
        else:
            logger.info("✅ Store health check passed")

        logger.info("🎉 Médiathèque application started successfully!")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    # Shutdown
    logger.info("🛑 Shutting down Médiathèque application...")

    try:
        await app.state.store.close()
        logger.info("✅ Store closed")
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


app = FastAPI(
    title="Médiathèque - Library catalogue",
    description="Catalogue, accounts and borrow/return lifecycle",
    version=VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,  # Disable docs in production
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Log slow requests
    if process_time > 5.0:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path} ({process_time:.2f}s)"
        )

    return response


# Register API routes
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Auth"])
app.include_router(documents.router, prefix=settings.API_PREFIX, tags=["Documents"])
app.include_router(admin.router, prefix=settings.API_PREFIX, tags=["Admin"])


# Root endpoint
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "Médiathèque API",
        "version": VERSION,
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint.
    Checks store connectivity.
    """
    health_status = {
        "success": True,
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": VERSION,
        "database": settings.MONGODB_DB_NAME,
        "checks": {}
    }

    store = getattr(request.app.state, "store", None)
    db_healthy = store is not None and await store.ping()
    health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"

    if not db_healthy:
        health_status["success"] = False
        health_status["status"] = "degraded"

    status_code = 200 if db_healthy else 503
    return JSONResponse(content=health_status, status_code=status_code)


# Readiness probe (for Kubernetes/orchestration)
@app.get("/ready", tags=["Health"])
async def readiness_check(request: Request):
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    store = getattr(request.app.state, "store", None)
    if store is not None and await store.ping():
        return {"status": "ready"}
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "reason": "database_unavailable"}
    )


# Liveness probe (for Kubernetes/orchestration)
@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
