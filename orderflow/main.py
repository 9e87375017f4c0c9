"""
Orderflow API
Budgets, orders, production dispatch, logistics and commissions behind one FastAPI app
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import subprocess
import os

from orderflow.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from orderflow.core_settings import get_settings
from orderflow.domain.states import InvalidTransition
from orderflow.infrastructure.db import engine, init_models
from orderflow.api.routes import (
    auth, users, budgets, orders, production_orders, logistics, commissions, producer_payments, logs,
)

settings = get_settings()

# Service configuration
SERVICE_NAME = "orderflow"
SERVICE_VERSION = settings.SERVICE_VERSION
SERVICE_DESCRIPTION = "Order fulfillment: budgets, orders, production, logistics and commissions"

# Setup structured logging
setup_logging(service_name=SERVICE_NAME, level=settings.LOG_LEVEL)

logger = get_logger(__name__)

def run_migrations() -> None:
    logger.info("Running database migrations")
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=os.path.join(os.path.dirname(__file__), ".."),
        capture_output=True,
        text=True,
        check=False
    )
    if result.returncode != 0:
        logger.warning(f"Migration output: {result.stderr}")
    else:
        logger.info("Database migrations completed")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    logger.info(f"Starting {SERVICE_NAME} version {SERVICE_VERSION}")

    if settings.RUN_MIGRATIONS:
        try:
            run_migrations()
        except OSError as e:
            logger.error(f"Migration error: {e}")

    try:
        init_models()
        logger.info("Database models initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database models: {e}")
        raise

    logger.info(f"{SERVICE_NAME} started successfully")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")

app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    logger.warning(str(exc))
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "from": exc.current, "to": exc.target},
    )

health_service = ServiceHealth(SERVICE_NAME, engine, SERVICE_VERSION)
app.include_router(health_service.create_health_router())

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(budgets.router)
app.include_router(orders.router)
app.include_router(orders.items_router)
app.include_router(production_orders.router)
app.include_router(logistics.router)
app.include_router(commissions.router)
app.include_router(producer_payments.router)
app.include_router(producer_payments.finance_router)
app.include_router(logs.router)

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "docs": "/api/docs"
    }

@app.get("/info")
async def info():
    """Service information endpoint"""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": SERVICE_DESCRIPTION,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "endpoints": {
            "health": "/health",
            "ready": "/health/ready",
            "live": "/health/live",
            "metrics": "/metrics",
            "docs": "/api/docs"
        }
    }
